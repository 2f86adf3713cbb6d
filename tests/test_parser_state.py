from heading_tags.models import ParserContext, ParserState
from heading_tags.parser import _normalize_fence_line, _try_close_fence, _try_open_fence


def test_try_open_fence_sets_context_fields():
    ctx = ParserContext()

    opened = _try_open_fence(ctx, "   ```python")

    assert opened is True
    assert ctx.state is ParserState.IN_FENCED_CODE
    assert ctx.fence_char == "`"
    assert ctx.fence_length == 3


def test_try_open_fence_rejects_short_or_deep_markers():
    assert _try_open_fence(ParserContext(), "``") is False
    assert _try_open_fence(ParserContext(), "    ```") is False
    assert _try_open_fence(ParserContext(), "text ```") is False


def test_try_open_fence_inside_blockquote():
    ctx = ParserContext()

    assert _try_open_fence(ctx, "> > ~~~~") is True
    assert ctx.fence_char == "~"
    assert ctx.fence_length == 4


def test_try_open_fence_ignored_when_already_in_code():
    ctx = ParserContext(state=ParserState.IN_FENCED_CODE, fence_char="~", fence_length=3)

    assert _try_open_fence(ctx, "```") is False
    assert ctx.fence_char == "~"
    assert ctx.fence_length == 3


def test_try_close_fence_needs_matching_run():
    ctx = ParserContext(state=ParserState.IN_FENCED_CODE, fence_char="`", fence_length=4)

    assert _try_close_fence(ctx, "```") is False
    assert _try_close_fence(ctx, "~~~~") is False
    assert _try_close_fence(ctx, "```` js") is False
    assert ctx.state is ParserState.IN_FENCED_CODE

    assert _try_close_fence(ctx, "  `````  ") is True
    assert ctx.state is ParserState.NORMAL
    assert ctx.fence_char is None
    assert ctx.fence_length == 0


def test_try_close_fence_outside_code_is_a_no_op():
    ctx = ParserContext()
    assert _try_close_fence(ctx, "```") is False
    assert ctx.state is ParserState.NORMAL


def test_normalize_fence_line():
    assert _normalize_fence_line("   > > ```") == "```"
    assert _normalize_fence_line("    ```") == " ```"
