# uiflow/tests/test_actions.py
"""
Tests for interaction steps against the in-memory driver.
"""
import pytest
from pydantic import SecretStr

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
from uiflow.chain import Chain
from uiflow.finders import find
from uiflow.schemas.failure import FailureKind
from uiflow.tests.fakes import FakeElement, list_page, make_context


def login_page():
    username = FakeElement("input", id="user")
    password = FakeElement("input", id="pass")
    country = FakeElement("select", id="country", options=("France", "Norway"))
    submit = FakeElement("button", id="go", text="Sign in")
    return username, password, country, submit


@pytest.mark.asyncio
async def test_goto_clears_scope_and_focus():
    ctx = make_context(*list_page())
    focused = await Chain.of(find("li")).run(ctx)
    result = await Chain.of(goto("https://example.com/next")).run(focused)
    assert result.focus is None
    assert result.scope is None
    assert ctx.driver.page.url == "https://example.com/next"


@pytest.mark.asyncio
async def test_click_with_selector_and_index():
    ctx = make_context(*list_page())
    result = await Chain.of(click("li", index=2)).run(ctx)
    items = ctx.driver.page.root.children[0].children
    assert [i.clicks for i in items] == [0, 0, 1]
    assert await result.focus.text() == "Gamma"


@pytest.mark.asyncio
async def test_click_focused_element():
    button = FakeElement("button", id="go")
    await Chain.of(find("#go"), click(), dbl_click()).run(make_context(button))
    assert button.clicks == 1
    assert button.dbl_clicks == 1


@pytest.mark.asyncio
async def test_click_without_focus_is_usage_failure():
    result = await Chain.of(click()).run(make_context())
    assert result.failure.kind is FailureKind.USAGE
    assert result.failure.step == "click"


@pytest.mark.asyncio
async def test_click_missing_selector_is_resolution_failure():
    result = await Chain.of(click("#nowhere")).run(make_context())
    assert result.failure.kind is FailureKind.RESOLUTION
    assert "'#nowhere' not found" in result.failure.message


@pytest.mark.asyncio
async def test_click_driver_error_is_interaction_failure():
    result = await Chain.of(click("#go")).run(make_context(FakeElement("button", id="go", fail_click=True)))
    assert result.failure.kind is FailureKind.INTERACTION
    assert "detached" in result.failure.message


@pytest.mark.asyncio
async def test_set_text_fills_and_selects():
    username, password, country, submit = login_page()
    ctx = make_context(username, password, country, submit)
    result = await Chain.of(
        set_text("alice", "#user"),
        set_text(SecretStr("hunter22"), "#pass"),
        set_text("Norway", "#country"),
        press_enter(),
    ).run(ctx)

    assert not result.has_failure()
    assert username.value == "alice"
    assert password.value == "hunter22"
    assert country.selected == ["Norway"]
    assert country.keys == ["Enter"]


@pytest.mark.asyncio
async def test_set_text_secret_is_masked_in_trace():
    _, password, _, _ = login_page()
    ctx = make_context(password)
    await Chain.of(set_text(SecretStr("hunter22"), "#pass")).run(ctx)
    assert not any("hunter22" in line for line in ctx.trace.lines)


@pytest.mark.asyncio
async def test_press_records_key():
    field = FakeElement("input", id="q")
    await Chain.of(find("#q"), press("Tab")).run(make_context(field))
    assert field.keys == ["Tab"]


@pytest.mark.asyncio
async def test_select_combo_text_missing_option():
    _, _, country, _ = login_page()
    result = await Chain.of(select_combo_text("Atlantis", "#country")).run(make_context(country))
    assert result.failure.kind is FailureKind.ASSERTION
    assert "Can't find combo text" in result.failure.message

    ok = await Chain.of(select_combo_text("France", "#country")).run(make_context(country))
    assert not ok.has_failure()
    assert country.value == "France"


@pytest.mark.asyncio
async def test_script_runs_in_page():
    ctx = make_context()
    await Chain.of(script("window.scrollTo(0, arguments[0])", 400)).run(ctx)
    assert ctx.driver.page.scripts == [("window.scrollTo(0, arguments[0])", (400,))]


@pytest.mark.asyncio
async def test_switch_to_frame_scopes_later_finds():
    inner = FakeElement("input", id="card")
    frame = FakeElement("iframe", id="pay", children=[inner])
    ctx = make_context(frame)

    outside = await Chain.of(find("#card", timeout=0)).run(ctx)
    assert outside.has_failure()

    result = await Chain.of(switch_to_frame("#pay"), set_text("4111", "#card")).run(ctx)
    assert result.scope.selector == "#pay"
    assert inner.value == "4111"

    back = await Chain.of(switch_to_default()).run(result)
    assert back.scope is None


@pytest.mark.asyncio
async def test_switch_to_missing_frame_fails():
    result = await Chain.of(switch_to_frame("#nope")).run(make_context())
    assert result.failure.kind is FailureKind.INTERACTION


@pytest.mark.asyncio
async def test_follow_link_checks_title():
    link = FakeElement("a", id="next")
    ctx = make_context(link, title="Checkout")
    ok = await Chain.of(follow_link("#next", "Checkout", timeout=5)).run(ctx)
    assert not ok.has_failure()
    assert link.clicks == 1
    assert ("wait_for_load", 5) in ctx.driver.calls

    wrong = await Chain.of(follow_link("#next", "Basket")).run(ctx)
    assert wrong.failure.kind is FailureKind.ASSERTION
    assert wrong.failure.message == "Expected title 'Basket', actual 'Checkout'"


@pytest.mark.asyncio
async def test_store_text_and_value():
    field = FakeElement("input", id="q", value="typed")
    ctx = make_context(field, *list_page())
    await Chain.of(find("li", index=1), store_text("label"), find("#q"), store_value("query")).run(ctx)
    assert ctx.items.snapshot() == {"label": "Beta", "query": "typed"}


@pytest.mark.asyncio
async def test_store_value_falls_back_to_text():
    ctx = make_context(*list_page())
    await Chain.of(find("li"), store_value("first")).run(ctx)
    assert ctx.items["first"] == "Alpha"


@pytest.mark.asyncio
async def test_set_and_clear_items():
    ctx = make_context()
    await Chain.of(set_item("a", "1"), set_item("b", "2"), clear_item("a")).run(ctx)
    assert ctx.items.snapshot() == {"b": "2"}
    await Chain.of(clear_item()).run(ctx)
    assert len(ctx.items) == 0


@pytest.mark.asyncio
async def test_set_text_never_traces_plain_text():
    _, password, _, _ = login_page()
    ctx = make_context(password)
    await Chain.of(set_text("hunter22", "#pass")).run(ctx)

    assert password.value == "hunter22"
    assert not any("hunter22" in line for line in ctx.trace.lines)
    assert "set_text(selector='#pass', chars=8)" in ctx.trace.steps


@pytest.mark.asyncio
async def test_set_item_masks_value_for_secret_keys():
    ctx = make_context()
    await Chain.of(set_item("api_token", "hunter2"), set_item("city", "Oslo")).run(ctx)

    assert ctx.items["api_token"] == "hunter2"
    assert not any("hunter2" in line for line in ctx.trace.lines)
    assert ctx.trace.steps == [
        "set_item(key='api_token', value='********')",
        "set_item(key='city', value='Oslo')",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "step",
    [
        goto(None),
        click(""),
        set_text(None, "#q"),
        press(None),
        select_combo_text(None, "#q"),
        script(None),
        switch_to_frame(None),
        follow_link(None, "Home"),
        store_text(None),
        store_value(None),
        set_item(None, "x"),
        set_item("k", None),
    ],
    ids=lambda s: s.name,
)
async def test_missing_arguments_are_usage_failures(step):
    ctx = make_context(FakeElement("input", id="q"))
    focused = await Chain.of(find("#q")).run(ctx)
    result = await Chain.of(step).run(focused)
    assert result.failure.kind is FailureKind.USAGE
