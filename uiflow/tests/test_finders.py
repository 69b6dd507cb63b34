# uiflow/tests/test_finders.py
"""
Tests for element resolution: index laws, waiting, probes, relative
finders and collection filters.
"""
import pytest

from uiflow.chain import Chain
from uiflow.exceptions import ResolutionError
from uiflow.executors.driver import FrameScope
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
    relative_find_xpath,
    resolve_index,
)
from uiflow.schemas.failure import FailureKind
from uiflow.step import Step
from uiflow.tests.fakes import FakeElement, list_page, make_context


async def focused_text(context):
    return await context.focus.text()


@pytest.mark.parametrize(
    "index, count, expected",
    [(0, 3, 0), (2, 3, 2), (-1, 3, 2), (-3, 3, 0)],
)
def test_resolve_index_in_range(index, count, expected):
    assert resolve_index(index, count, "find") == expected


@pytest.mark.parametrize("index", [3, 7, -4])
def test_resolve_index_out_of_range_names_range(index):
    with pytest.raises(ResolutionError) as exc:
        resolve_index(index, 3, "find")
    assert f"index {index} out of range (0..2)" in str(exc.value)


@pytest.mark.asyncio
async def test_find_default_index_is_first():
    default = await Chain.of(find("li")).run(make_context(*list_page()))
    explicit = await Chain.of(find("li", index=0)).run(make_context(*list_page()))
    assert await focused_text(default) == "Alpha"
    assert await focused_text(explicit) == "Alpha"


@pytest.mark.asyncio
async def test_find_negative_index_and_find_last():
    last = await Chain.of(find("li", index=-1)).run(make_context(*list_page()))
    also_last = await Chain.of(find_last("li")).run(make_context(*list_page()))
    assert await focused_text(last) == "Gamma"
    assert await focused_text(also_last) == "Gamma"


@pytest.mark.asyncio
async def test_find_index_out_of_range_fails():
    result = await Chain.of(find("li", index=5)).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.RESOLUTION
    assert "index 5 out of range (0..2)" in result.failure.message
    assert result.failure.step == "find"


@pytest.mark.asyncio
async def test_find_waits_before_counting():
    ctx = make_context(*list_page())
    await Chain.of(find("li", timeout=2.5)).run(ctx)
    calls = [c for c in ctx.driver.calls if c[0] in ("wait_for", "count")]
    assert calls[0] == ("wait_for", "li", 2.5, False)
    assert calls[1] == ("count", "li")


@pytest.mark.asyncio
async def test_find_sees_elements_attached_while_waiting():
    ctx = make_context()
    ctx.driver.page.pending.append(FakeElement("button", text="Late", id="late"))
    result = await Chain.of(find("#late")).run(ctx)
    assert not result.has_failure()
    assert await focused_text(result) == "Late"


@pytest.mark.asyncio
async def test_find_zero_matches_fails():
    result = await Chain.of(find("table")).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.RESOLUTION
    assert "'table' not found" in result.failure.message


@pytest.mark.asyncio
async def test_find_all_collects_every_match():
    result = await Chain.of(find_all("li")).run(make_context(*list_page()))
    assert result.focus is None
    assert len(result.collection) == 3
    assert [await item.text() for item in result.collection] == ["Alpha", "Beta", "Gamma"]


@pytest.mark.asyncio
async def test_find_all_no_match_fails_instead_of_empty():
    result = await Chain.of(find_all(".missing")).run(make_context(*list_page()))
    assert result.has_failure()
    assert result.collection is None


@pytest.mark.asyncio
async def test_xpath_finders():
    one = await Chain.of(find_xpath("//li", index=1)).run(make_context(*list_page()))
    many = await Chain.of(find_all_xpath("//li")).run(make_context(*list_page()))
    assert await focused_text(one) == "Beta"
    assert len(many.collection) == 3


@pytest.mark.asyncio
async def test_xpath_failure_shows_plain_expression():
    result = await Chain.of(find_xpath("//table")).run(make_context(*list_page()))
    assert "'//table' not found" in result.failure.message
    assert "xpath=" not in result.failure.message


@pytest.mark.asyncio
async def test_global_find_uses_frame_scope():
    inner = FakeElement("button", text="Inside")
    outer = FakeElement("button", text="Outside")
    frame = FakeElement("iframe", id="pay", children=[inner])
    ctx = make_context(outer, frame)
    scoped = ctx.with_scope(FrameScope(selector="#pay", handle=frame))

    result = await Chain.of(find("button")).run(scoped)
    assert await focused_text(result) == "Inside"


@pytest.mark.asyncio
async def test_relative_find_searches_focused_element():
    sidebar = FakeElement("div", id="side", children=[FakeElement("a", text="Side link")])
    main = FakeElement("div", id="main", children=[FakeElement("a", text="Main link")])
    result = await Chain.of(find("#main"), relative_find("a")).run(make_context(sidebar, main))
    assert await focused_text(result) == "Main link"


@pytest.mark.asyncio
async def test_relative_find_all_and_xpath():
    ctx = make_context(*list_page())
    many = await Chain.of(find("#list"), relative_find_all("li")).run(ctx)
    assert len(many.collection) == 3
    one = await Chain.of(find("#list"), relative_find_xpath("//li", index=-1)).run(make_context(*list_page()))
    assert await focused_text(one) == "Gamma"


@pytest.mark.asyncio
async def test_relative_find_without_focus_is_usage_failure():
    result = await Chain.of(relative_find("li")).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.USAGE
    assert "missing context element" in result.failure.message


@pytest.mark.asyncio
async def test_exists_miss_is_informational():
    ctx = make_context(*list_page())
    assert await exists(ctx, ".absent", timeout=0) is False
    assert not ctx.has_failure()
    assert ctx.trace.errors == []
    assert ctx.trace.infos == ["exists [.absent] not found"]


@pytest.mark.asyncio
async def test_exists_hit_waits_for_visibility():
    ctx = make_context(*list_page())
    assert await exists(ctx, "li", timeout=0.5) is True
    assert ("wait_for", "li", 0.5, True) in ctx.driver.calls


@pytest.mark.asyncio
async def test_exists_ignores_hidden_elements():
    ctx = make_context(FakeElement("div", id="modal", visible=False))
    assert await exists(ctx, "#modal", timeout=0) is False


@pytest.mark.asyncio
async def test_exists_xpath():
    ctx = make_context(*list_page())
    assert await exists_xpath(ctx, "//li") is True
    assert await exists_xpath(ctx, "//table") is False
    assert ctx.trace.infos == ["exists_xpath [//table] not found"]


@pytest.mark.asyncio
async def test_if_exists_branches():
    taken = []

    def branch(tag):
        def body(context):
            taken.append(tag)
            return context

        return Step.of(body, name=tag)

    ctx = make_context(*list_page())
    await Chain.of(
        if_exists("#list", on_true=branch("present")),
        if_exists("#cookie-banner", on_true=branch("banner"), on_false=branch("no-banner")),
    ).run(ctx)
    assert taken == ["present", "no-banner"]


@pytest.mark.asyncio
async def test_first_and_last_containing_text():
    page = (FakeElement("ul", children=[FakeElement("li", text=t) for t in ("Beta one", "Alpha", "Beta two")]),)
    first = await Chain.of(find_all("li"), first_containing_text("Beta")).run(make_context(*page))
    last = await Chain.of(find_all("li"), last_containing_text("Beta")).run(make_context(*page))
    assert await focused_text(first) == "Beta one"
    assert await focused_text(last) == "Beta two"
    assert first.collection is None


@pytest.mark.asyncio
async def test_containing_text_no_match():
    result = await Chain.of(find_all("li"), first_containing_text("zzz")).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.RESOLUTION
    assert result.failure.message == "Text 'zzz' not found in the context collection."


@pytest.mark.asyncio
async def test_containing_item_reads_store():
    ctx = make_context(*list_page())
    ctx.items["wanted"] = "amm"
    result = await Chain.of(find_all("li"), first_containing_item("wanted")).run(ctx)
    assert await focused_text(result) == "Gamma"
    result = await Chain.of(find_all("li"), last_containing_item("wanted")).run(ctx)
    assert await focused_text(result) == "Gamma"


@pytest.mark.asyncio
async def test_containing_item_missing_key_is_usage_failure():
    result = await Chain.of(find_all("li"), first_containing_item("nope")).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.USAGE
    assert "nope" in result.failure.message


@pytest.mark.asyncio
async def test_filter_without_collection_is_usage_failure():
    result = await Chain.of(first_containing_text("Alpha")).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.USAGE


@pytest.mark.asyncio
async def test_collection_filter_custom_pick():
    def second(items):
        return items[1]

    async def nothing(items):
        return None

    picked = await Chain.of(find_all("li"), collection_filter(second, "second")).run(make_context(*list_page()))
    assert await focused_text(picked) == "Beta"

    missed = await Chain.of(find_all("li"), collection_filter(nothing, "nothing")).run(make_context(*list_page()))
    assert missed.failure.kind is FailureKind.RESOLUTION
    assert missed.failure.step == "nothing"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "step",
    [
        find(None),
        find("   "),
        find_all(None),
        find_last(None),
        find_xpath(None),
        find_all_xpath(None),
        relative_find(None),
        relative_find_all(None),
        relative_find_xpath(None),
        if_exists(None),
    ],
    ids=lambda s: s.name,
)
async def test_missing_selector_is_usage_failure(step):
    ctx = make_context(*list_page())
    focused = await Chain.of(find("#list")).run(ctx)
    result = await Chain.of(step).run(focused)
    assert result.failure.kind is FailureKind.USAGE
    assert "selector is required" in result.failure.message
    assert not any(call[0] == "wait_for" and call[1] != "#list" for call in ctx.driver.calls)


@pytest.mark.asyncio
async def test_containing_text_none_is_usage_failure():
    result = await Chain.of(find_all("li"), first_containing_text(None)).run(make_context(*list_page()))
    assert result.failure.kind is FailureKind.USAGE
