# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tests for header synthesis and the discovery footer."""

import pytest

from testx.parser.data import SourceLocation, Span, Visibility
from testx.resolver import SetupResolver
from testx.synthesizer import CodeSynthesizer, EmittedDefinition, one_line, presence_check
from testx.validator import SignatureValidator


@pytest.fixture
def synthesizer():
    return CodeSynthesizer()


@pytest.fixture
def emit(parse, synthesizer):
    """Run the pipeline on source with one annotated test."""
    def _emit(source: str):
        parsed = parse(source)
        item = parsed.items[0]
        plan = SignatureValidator().validate(SetupResolver().resolve(item.descriptor, item.scope))
        return synthesizer.synthesize(plan, parsed.source)
    return _emit


class TestHeader:
    """Replacement headers occupy exactly the original header lines."""

    def test_setup_binding(self, emit, sample_source):
        emitted = emit(sample_source)

        assert emitted.header_text == "def sample():\n    num: int = setup()"
        assert emitted.text.rstrip("\n") == "def sample():\n    num: int = setup()\n    assert num == 4711"
        assert emitted.name == "sample"
        assert emitted.qualname == "sample"
        assert emitted.setup_name == "setup"
        assert emitted.requires_setup
        assert emitted.location.line == 9

    def test_no_setup_keeps_line_with_padding(self, emit):
        emitted = emit("""\
            from testx import testx

            @testx
            def test_plain():
                \"\"\"Docstring stays.\"\"\"
                assert True
            """)

        assert emitted.header_text == "\ndef test_plain():"
        assert not emitted.requires_setup
        assert emitted.setup_name is None
        assert '"""Docstring stays."""' in emitted.text

    def test_other_decorators_are_kept(self, emit):
        emitted = emit("""\
            import pytest
            from testx import testx

            def setup() -> int:
                return 1

            @pytest.mark.slow
            @testx
            def test_x(v: int):
                assert v == 1
            """)

        assert emitted.header_text == "@pytest.mark.slow\ndef test_x():\n    v: int = setup()"

    def test_method_calls_setup_on_receiver(self, emit):
        emitted = emit("""\
            import pytest
            from testx import testx


            class TestThing:
                def setup(self) -> str:
                    return "thing"

                @pytest.mark.slow
                @testx
                def check(self, value: str):
                    assert value == "thing"
            """)

        assert emitted.header_text == (
            "@pytest.mark.slow\n    def check(self):\n        value: str = self.setup()"
        )
        assert emitted.qualname == "TestThing.check"

    def test_unannotated_parameter(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup():
                return 1

            @testx
            def test_x(value):
                assert value == 1
            """)

        assert emitted.header_text == "def test_x():\n    value = setup()"

    def test_inline_body(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup() -> int:
                return 1

            @testx
            def t(x: int): assert x == 1
            """)

        assert emitted.header_text == "\ndef t(): x: int = setup();"
        assert emitted.text.rstrip("\n") == "\ndef t(): x: int = setup(); assert x == 1"

    def test_async_setup_is_awaited(self, emit):
        emitted = emit("""\
            from testx import testx

            async def setup() -> int:
                return 1

            @testx
            async def t(x: int):
                assert x == 1
            """)

        assert emitted.header_text == "async def t():\n    x: int = await setup()"

    def test_sync_setup_in_async_test_is_called(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup() -> int:
                return 1

            @testx
            async def t(x: int):
                assert x == 1
            """)

        assert emitted.header_text == "async def t():\n    x: int = setup()"

    def test_multi_line_signature(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup() -> int:
                return 1

            @testx
            def test_long(
                value: int,
            ):
                assert value == 1
            """)

        assert emitted.header_text == "\n\ndef test_long():\n    value: int = setup()"

    def test_multi_line_annotation_is_joined(self, emit):
        emitted = emit("""\
            from typing import Dict
            from testx import testx

            def setup() -> Dict[str,
                                int]:
                return {}

            @testx
            def test_map(value: Dict[str,
                                     int]):
                assert value == {}
            """)

        assert emitted.header_text == "\ndef test_map():\n    value: Dict[str, int] = setup()"

    def test_return_annotation_is_kept(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup() -> int:
                return 1

            @testx
            def test_x(v: int) -> None:
                assert v
            """)

        assert emitted.header_text == "def test_x() -> None:\n    v: int = setup()"

    def test_marker_override_calls_named_setup(self, emit):
        emitted = emit("""\
            from testx import testx

            def setup_666() -> int:
                return 666

            @testx(setup="setup_666")
            def test_x(v: int):
                assert v == 666
            """)

        assert emitted.header_text == "def test_x():\n    v: int = setup_666()"
        assert emitted.setup_name == "setup_666"

    def test_header_line_count_is_preserved(self, emit):
        source = """\
            import pytest
            from testx import testx

            def setup() -> int:
                return 1

            @pytest.mark.parametrize(
                "unused", [1],
            )
            @testx
            def test_x(
                v: int,
                ) -> None:
                assert v
            """
        emitted = emit(source)

        assert emitted.header_text.count("\n") == 6
        assert emitted.header_text.startswith('@pytest.mark.parametrize(\n    "unused", [1],\n)\n')


@pytest.mark.parametrize("text,expected", [
    (None, None),
    ("int", "int"),
    ("Dict[str,\n     int]", "Dict[str, int]"),
    ("Tuple[\n    int,\n    str,\n]", "Tuple[ int, str, ]"),
    ("Dict[str,  # key\n     int]", None),
    ("Literal['''a\nb''']", None),
    ("Dict[str, \\\n int]", None),
])
def test_one_line(text, expected):
    assert one_line(text) == expected


def _definition(qualname, guarded=False):
    name = qualname.rsplit(".", 1)[-1] if qualname else "inner"
    return EmittedDefinition(
        name=name,
        visibility=Visibility.EXPORTED,
        qualname=qualname,
        span=Span(0, 0),
        header_text="",
        text="",
        location=SourceLocation("sample.py", 1, 1),
        guarded=guarded,
    )


def test_discovery_footer(synthesizer):
    footer = synthesizer.render_discovery([
        _definition("sample"),
        _definition(None),
        _definition("TestThing.check"),
        _definition("guarded", guarded=True),
    ])

    assert footer == (
        "\n"
        "# testx: expanded tests are collected through their __test__ attribute\n"
        "sample.__test__ = True\n"
        "TestThing.check.__test__ = True\n"
        'if "guarded" in globals():\n'
        "    guarded.__test__ = True\n"
    )


def test_no_footer_without_qualnames(synthesizer):
    assert synthesizer.render_discovery([]) == ""
    assert synthesizer.render_discovery(iter(())) == ""
    assert synthesizer.render_discovery([_definition(None, guarded=True)]) == ""


@pytest.mark.parametrize("qualname,expected", [
    ("guarded", '"guarded" in globals()'),
    ("TestThing.check", '"TestThing" in globals() and hasattr(TestThing, "check")'),
    ("A.B.check", '"A" in globals() and hasattr(A, "B") and hasattr(A.B, "check")'),
])
def test_presence_check(qualname, expected):
    assert presence_check(qualname) == expected
