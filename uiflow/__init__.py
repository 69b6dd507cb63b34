"""
uiflow core package.

A fluent automation DSL: steps over an immutable navigation Context,
composed into chains that stop at the first failure instead of raising.
"""

from uiflow.actions import (
    clear_item,
    click,
    dbl_click,
    follow_link,
    goto,
    press,
    press_enter,
    script,
    select_combo_text,
    set_item,
    set_text,
    store_text,
    store_value,
    switch_to_default,
    switch_to_frame,
)
from uiflow.assertions import (
    assert_attribute_value,
    assert_text,
    assert_title,
    assertion,
    create_failure,
)
from uiflow.chain import CancellationToken, Chain, as_step, execute_step
from uiflow.combinators import (
    BackoffPolicy,
    repeat_while,
    retry,
    retry_step,
    use,
    use_element,
    when,
)
from uiflow.context import Context, ItemStore
from uiflow.finders import (
    collection_filter,
    exists,
    exists_xpath,
    find,
    find_all,
    find_all_xpath,
    find_last,
    find_xpath,
    first_containing_item,
    first_containing_text,
    if_exists,
    last_containing_item,
    last_containing_text,
    relative_find,
    relative_find_all,
    relative_find_all_xpath,
    relative_find_xpath,
)
from uiflow.schemas.failure import Failure, FailureKind
from uiflow.session import BrowserBrand, close_context, create_context, open_context
from uiflow.step import Step, define_step

__all__ = [
    "BackoffPolicy",
    "BrowserBrand",
    "CancellationToken",
    "Chain",
    "Context",
    "Failure",
    "FailureKind",
    "ItemStore",
    "Step",
    "as_step",
    "assert_attribute_value",
    "assert_text",
    "assert_title",
    "assertion",
    "clear_item",
    "click",
    "close_context",
    "collection_filter",
    "create_context",
    "create_failure",
    "dbl_click",
    "define_step",
    "execute_step",
    "exists",
    "exists_xpath",
    "find",
    "find_all",
    "find_all_xpath",
    "find_last",
    "find_xpath",
    "first_containing_item",
    "first_containing_text",
    "follow_link",
    "goto",
    "if_exists",
    "last_containing_item",
    "last_containing_text",
    "open_context",
    "press",
    "press_enter",
    "relative_find",
    "relative_find_all",
    "relative_find_all_xpath",
    "relative_find_xpath",
    "repeat_while",
    "retry",
    "retry_step",
    "script",
    "select_combo_text",
    "set_item",
    "set_text",
    "store_text",
    "store_value",
    "switch_to_default",
    "switch_to_frame",
    "use",
    "use_element",
    "when",
]
