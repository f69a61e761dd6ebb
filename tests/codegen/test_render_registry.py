"""Tests for the render table and render context."""

import pytest

from recordforge.codegen import (
    FRAMEWORK_SUPPORT,
    GenerationOptions,
    RenderContext,
    RenderKey,
    TargetLanguage,
    build_render_table,
    lookup,
)
from recordforge.codegen.engine import RENDER_TABLE
from recordforge.codegen.registry import collect_features
from recordforge.codegen.templates import ANY, LANGUAGE_TEMPLATES, PythonTemplate
from recordforge.recording.events import (
    AssertionEvent,
    AssertionType,
    ClickEvent,
    EventKind,
    GroupEvent,
    LoopEvent,
)
from recordforge.recording.models import LoopConfig, LoopType

# Base command per leaf kind
LEAF_COMMANDS = [
    (EventKind.CLICK, "click"),
    (EventKind.INPUT, "clear_and_type"),
    (EventKind.NAVIGATION, "navigate"),
    (EventKind.ASSERTION, "url_contains"),
    (EventKind.CAPTURE, "element"),
    (EventKind.CUSTOM_JS, "execute"),
]


class TestRenderTable:
    """Tests for table construction and lookup."""

    def test_keys_carry_template_identity(self):
        """Test every key names its template's language and framework."""
        table = build_render_table([PythonTemplate()])

        assert RenderKey(TargetLanguage.PYTHON, ANY, EventKind.LOOP, "count") in table
        assert all(key.framework == ANY for key in table)

    @pytest.mark.parametrize(
        "language,framework",
        [
            (language, framework.value)
            for language, frameworks in FRAMEWORK_SUPPORT.items()
            for framework in frameworks
        ],
    )
    def test_supported_combinations_cover_leaf_kinds(self, language, framework):
        """Test supported combinations have a renderer for every leaf kind."""
        for kind, command in LEAF_COMMANDS:
            assert lookup(RENDER_TABLE, language, framework, kind, command) is not None, (kind, command)

    def test_containers_fall_back_to_language_template(self):
        """Test container lookups use the language wildcard."""
        fn = lookup(RENDER_TABLE, TargetLanguage.PYTHON, "playwright", EventKind.GROUP, "group")
        assert fn == LANGUAGE_TEMPLATES[TargetLanguage.PYTHON].render_group

    def test_unknown_framework_misses_leaves(self):
        """Test leaf lookups for unknown frameworks miss."""
        assert lookup(RENDER_TABLE, TargetLanguage.PYTHON, "webdriverio", EventKind.CLICK, "click") is None
        assert lookup(RENDER_TABLE, TargetLanguage.PYTHON, "webdriverio", EventKind.LOOP, "count") is not None

    def test_unknown_command_misses(self):
        """Test commands without a renderer or wildcard miss."""
        assert lookup(RENDER_TABLE, TargetLanguage.JAVA, "selenium", EventKind.LOOP, "loop") is None


class TestRenderContext:
    """Tests for RenderContext state."""

    @pytest.fixture
    def ctx(self):
        options = GenerationOptions(language="python", framework="playwright")
        return RenderContext(template=PythonTemplate(), options=options, table=RENDER_TABLE)

    def test_next_name_counts_per_prefix(self, ctx):
        """Test generated names are sequential per prefix."""
        assert [ctx.next_name("element"), ctx.next_name("element"), ctx.next_name("result")] == [
            "element1",
            "element2",
            "result1",
        ]

    def test_declare_once(self, ctx):
        """Test declare reports only the first declaration."""
        assert ctx.declare("total")
        assert not ctx.declare("total")

    def test_scoped_declarations_end_with_their_block(self, ctx):
        """Test names declared in a nested block are visible inside it and gone after it."""
        ctx.declare("outer")
        with ctx.scope("i"):
            assert ctx.is_declared("i")
            assert not ctx.declare("outer")
            assert ctx.declare("inner")
        assert not ctx.is_declared("i")
        assert not ctx.is_declared("inner")
        assert ctx.declare("inner")

    def test_framework_name(self, ctx):
        """Test the context exposes the framework name."""
        assert ctx.framework == "playwright"


class TestCollectFeatures:
    """Tests for feature detection over a tree."""

    def test_nested_regex_assertion(self):
        """Test features are found below containers."""
        assertion = AssertionEvent(assertion_type=AssertionType.REGEX_MATCH, expected_value="a+")
        assert collect_features([GroupEvent(group_name="g", children=[assertion])]) == {"regex"}

    def test_for_each_loop_needs_data_source(self):
        """Test FOR_EACH loops need the data loader."""
        loop = LoopEvent(loop_config=LoopConfig(loop_type=LoopType.FOR_EACH, data_source_id="users"))
        assert collect_features([loop]) == {"data_source"}

    def test_plain_steps_need_nothing(self):
        """Test ordinary steps need no extra features."""
        assert collect_features([ClickEvent()]) == frozenset()
