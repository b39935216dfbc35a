# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""End-to-end tests for the expansion driver."""

import asyncio
import subprocess
import sys
import traceback
from textwrap import dedent

import pytest

from testx.diagnostics import SYNTAX_ERROR_KIND
from testx.errors import ErrorKind, SourceSyntaxError
from testx.expander import Expander, collect_files


def run_module(source: str, filename: str = "sample.py") -> dict:
    """Execute expanded source as a module and return its namespace."""
    namespace = {"__name__": "expanded_sample"}
    exec(compile(source, filename, "exec"), namespace)
    return namespace


class TestExpandSource:
    """Single-file expansion semantics."""

    def test_sample_expands_and_runs(self, expand, sample_source):
        result = expand(sample_source)

        assert result.ok
        assert result.changed
        assert [e.name for e in result.emitted] == ["sample"]

        namespace = run_module(result.source)
        assert namespace["sample"].__test__ is True
        namespace["sample"]()

    def test_expanded_source_layout(self, expand, sample_source):
        result = expand(sample_source)

        assert result.source == dedent("""\
            from testx import testx


            def setup() -> int:
                return 4711


            def sample():
                num: int = setup()
                assert num == 4711

            # testx: expanded tests are collected through their __test__ attribute
            sample.__test__ = True
            """)

    def test_failures_report_original_line_numbers(self, expand):
        result = expand("""\
            from testx import testx


            def setup() -> int:
                return 1


            @testx
            def sample(num: int):
                assert num == 2
            """)
        namespace = run_module(result.source)

        with pytest.raises(AssertionError) as excinfo:
            namespace["sample"]()

        frame = traceback.extract_tb(excinfo.tb)[-1]
        assert frame.filename == "sample.py"
        assert frame.lineno == 10
        assert frame.name == "sample"

    def test_body_lines_keep_their_positions(self, expand):
        source = dedent("""\
            import pytest
            from testx import testx


            def setup() -> dict:
                return {"a": 1}


            @pytest.mark.slow
            @testx
            def test_dict(
                data: dict,
            ):
                assert data["a"] == 1
                assert len(data) == 1


            @testx
            def test_plain():
                assert True
            """)
        result = Expander().expand_source(source)

        original_lines = source.splitlines()
        expanded_lines = result.source.splitlines()
        assert len(expanded_lines) > len(original_lines)
        for original, expanded in zip(original_lines, expanded_lines):
            if original.lstrip().startswith(("@", "def ", "data:", "):")):
                continue
            assert expanded == original

    def test_unannotated_source_passes_through(self, expand):
        source = dedent("""\
            def setup() -> int:
                return 1


            def test_plain():
                assert setup() == 1
            """)
        result = expand(source)

        assert result.ok
        assert not result.changed
        assert result.source == source
        assert result.emitted == []

    def test_no_footer_without_emitted_tests(self, expand):
        result = expand("""\
            from testx import testx


            @testx
            def sample(num: int):
                pass
            """)

        assert not result.ok
        assert "__test__ = True" not in result.source

    def test_footer_added_after_missing_trailing_newline(self):
        result = Expander().expand_source("from testx import testx\n\n@testx\ndef test_a():\n    pass")

        assert result.source.endswith("\n    pass\n\n# testx: expanded tests are collected "
                                      "through their __test__ attribute\ntest_a.__test__ = True\n")

    def test_expansion_is_idempotent(self, expand, sample_source):
        first = expand(sample_source)
        second = Expander().expand_source(first.source)

        assert second.ok
        assert not second.changed
        assert second.emitted == []

    def test_async_test_binds_awaited_setup(self, expand):
        result = expand("""\
            import asyncio

            from testx import testx


            async def setup() -> int:
                return 3


            @testx
            async def sample(num: int):
                assert num == 3
            """)

        namespace = run_module(result.source)
        asyncio.run(namespace["sample"]())


class TestFailureIsolation:
    """A rejected test is left untouched while its siblings expand."""

    @pytest.mark.parametrize("signature,kind", [
        ("def bad(value: str):", ErrorKind.TYPE_MISMATCH),
        ("def bad(a: int, b: int):", ErrorKind.AMBIGUOUS_PARAMETER_COUNT),
    ])
    def test_rejected_test_is_kept_verbatim(self, expand, signature, kind):
        result = expand(f"""\
            from testx import testx


            def setup() -> int:
                return 1


            @testx
            def good(value: int):
                assert value == 1


            @testx
            {signature}
                pass
            """)

        assert [e.name for e in result.emitted] == ["good"]
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.kind == kind.value
        assert diagnostic.location.line == 14
        assert f"@testx\n{signature}\n    pass\n" in result.source
        assert "good.__test__ = True" in result.source
        assert "bad.__test__" not in result.source

    def test_missing_setup_in_class_scope(self, expand):
        result = expand("""\
            from testx import testx


            def setup() -> int:
                return 1


            class TestThing:
                @testx
                def check(self, value: int):
                    pass


            @testx
            def outer(value: int):
                assert value == 1
            """)

        assert [d.kind for d in result.diagnostics] == ["MissingSetup"]
        assert result.diagnostics[0].location.line == 10
        assert [e.name for e in result.emitted] == ["outer"]

    def test_setup_method_without_self_is_rejected(self, expand):
        source = dedent("""\
            from testx import testx


            class TestThing:
                def setup() -> int:
                    return 4711

                @testx
                def check(self, num: int):
                    assert num == 4711
            """)
        result = expand(source)

        assert [d.kind for d in result.diagnostics] == ["MalformedInput"]
        diagnostic = result.diagnostics[0]
        assert diagnostic.location.line == 9
        assert diagnostic.notes[0][1].line == 5
        assert result.emitted == []
        assert result.source == source

    def test_malformed_items_are_reported(self, expand):
        result = expand("""\
            from testx import testx


            @testx
            class TestThing:
                pass


            @testx(fixture=1)
            def sample():
                pass
            """)

        assert [d.kind for d in result.diagnostics] == ["MalformedInput", "MalformedInput"]
        assert result.emitted == []
        assert not result.changed

    def test_syntax_error_rejects_file(self, expander):
        with pytest.raises(SourceSyntaxError):
            expander.expand_source("def broken(:\n    pass\n")


class TestDiscovery:
    """Footer marks exactly the tests reachable from module scope."""

    def test_footer_lists_reachable_tests(self, expand):
        result = expand("""\
            import sys

            from testx import testx


            def setup() -> int:
                return 1


            @testx
            def top(v: int):
                pass


            class TestThing:
                def setup(self) -> int:
                    return 2

                @testx
                def check(self, v: int):
                    pass


            def outer():
                @testx
                def inner():
                    pass


            if sys.platform:
                @testx
                def guarded():
                    pass
            """)

        assert result.ok
        assert {e.name for e in result.emitted} == {"top", "check", "inner", "guarded"}
        footer = result.source.split("# testx: expanded tests are collected through their __test__ attribute\n")[1]
        assert footer == (
            "top.__test__ = True\n"
            "TestThing.check.__test__ = True\n"
            'if "guarded" in globals():\n'
            "    guarded.__test__ = True\n"
        )

    def test_guarded_marks_follow_the_guard(self, expand):
        source = dedent("""\
            import os

            from testx import testx


            if os.environ.get("TESTX_NEVER_SET_FLAG"):
                @testx
                def skipped():
                    pass
            else:
                class TestChosen:
                    if True:
                        @testx
                        def check(self):
                            pass
            """)
        result = expand(source)

        assert 'if "skipped" in globals():\n    skipped.__test__ = True\n' in result.source
        assert ('if "TestChosen" in globals() and hasattr(TestChosen, "check"):\n'
                '    TestChosen.check.__test__ = True\n') in result.source

        namespace = run_module(result.source)
        assert "skipped" not in namespace
        assert namespace["TestChosen"].check.__test__ is True

    def test_setup_marked_as_test_is_not_collected(self, expand):
        result = expand("""\
            from testx import testx


            @testx
            def setup() -> int:
                return 4711


            @testx
            def sample(num: int):
                assert num == 4711
            """)

        assert result.ok
        assert [e.name for e in result.emitted] == ["setup", "sample"]
        assert "sample.__test__ = True" in result.source
        assert "setup.__test__" not in result.source

        namespace = run_module(result.source)
        assert not getattr(namespace["setup"], "__test__", False)
        namespace["sample"]()

    def test_expanded_tests_are_collected_by_pytest(self, tmp_path, write_file, expander):
        path = write_file("test_collected.py", """\
            from testx import testx


            def setup() -> int:
                return 4711


            @testx
            def sample(num: int):
                assert num == 4711


            class TestThing:
                def setup(self) -> str:
                    return "thing"

                @testx
                def check(self, value: str):
                    assert value == "thing"


            try:
                import json
            except ImportError:
                pass
            else:
                @testx
                def guarded(num: int):
                    assert json.loads(str(num)) == 4711
            """)

        command = [sys.executable, "-m", "pytest", "-q", "-p", "no:cacheprovider", str(path)]
        before = subprocess.run(command, cwd=tmp_path, capture_output=True, text=True)
        # Unexpanded marked tests are never collected
        assert before.returncode == pytest.ExitCode.NO_TESTS_COLLECTED, before.stdout

        result = expander.expand_file(path)
        path.write_text(result.source, encoding="utf-8")

        after = subprocess.run(command, cwd=tmp_path, capture_output=True, text=True)
        assert after.returncode == 0, after.stdout + after.stderr
        assert "3 passed" in after.stdout


class TestConfiguration:
    """Marker name, setup name and lookup are configurable."""

    def test_custom_marker_and_setup_names(self):
        expander = Expander(marker_name="injected", setup_name="make_value")
        result = expander.expand_source(dedent("""\
            from testx import testx as injected


            def make_value() -> int:
                return 5


            @injected
            def sample(num: int):
                assert num == 5
            """))

        assert result.ok
        assert "    num: int = make_value()\n" in result.source
        run_module(result.source)["sample"]()

    def test_marker_override_beats_configured_name(self, expand):
        result = expand("""\
            from testx import testx


            def setup() -> int:
                return 1


            def setup_666() -> int:
                return 666


            @testx(setup="setup_666")
            def sample(num: int):
                assert num == 666
            """)

        assert result.emitted[0].setup_name == "setup_666"
        run_module(result.source)["sample"]()

    def test_no_setup_opt_out(self, expand):
        result = expand("""\
            from testx import testx


            def setup() -> int:
                raise RuntimeError("setup must not run")


            @testx(no_setup=True)
            def plain():
                assert True


            @testx(no_setup=True)
            def needs_value(num: int):
                pass
            """)

        assert [e.name for e in result.emitted] == ["plain"]
        assert result.emitted[0].setup_name is None
        assert [d.kind for d in result.diagnostics] == ["MissingSetup"]
        assert result.diagnostics[0].location.line == 14
        assert "\ndef plain():\n    assert True\n" in result.source
        run_module(result.source)["plain"]()

    def test_injected_lookup(self):
        class ProviderLookup:
            def find(self, scope, name):
                return scope.lookup("provider")

        expander = Expander(lookup=ProviderLookup())
        result = expander.expand_source(dedent("""\
            from testx import testx


            def provider() -> int:
                return 9


            @testx
            def sample(num: int):
                assert num == 9
            """))

        assert result.emitted[0].setup_name == "provider"
        run_module(result.source)["sample"]()

    def test_from_config(self):
        from testx.settings import ExpansionConfig

        config = ExpansionConfig(marker="injected", setup_name="make_value")
        expander = Expander.from_config(config)

        assert expander.marker_name == "injected"
        assert expander.resolver.setup_name == "make_value"


class TestPaths:
    """File collection and multi-file expansion."""

    def test_collect_files(self, write_file, tmp_path):
        write_file("pkg/test_a.py", "x = 1\n")
        write_file("pkg/sub/test_b.py", "x = 2\n")
        write_file("pkg/helper.py", "x = 3\n")
        explicit = write_file("other/check_c.py", "x = 4\n")

        files = collect_files([tmp_path / "pkg", explicit, tmp_path / "pkg" / "test_a.py"])

        assert set(files) == {
            tmp_path / "pkg" / "test_a.py",
            tmp_path / "pkg" / "sub" / "test_b.py",
            explicit,
        }
        assert len(files) == 3
        assert files[-1] == explicit

    def test_collect_files_with_include(self, write_file, tmp_path):
        write_file("pkg/test_a.py", "x = 1\n")
        write_file("pkg/a_test.py", "x = 2\n")

        files = collect_files([tmp_path / "pkg"], include="*_test.py")

        assert files == [tmp_path / "pkg" / "a_test.py"]

    def test_collect_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            collect_files([tmp_path / "nope"])

    @pytest.mark.parametrize("jobs", [1, 3])
    def test_expand_paths(self, write_file, tmp_path, sample_source, jobs):
        write_file("tests/test_a.py", sample_source)
        write_file("tests/test_b.py", "def broken(:\n    pass\n")
        write_file("tests/test_c.py", "def test_plain():\n    pass\n")

        results = Expander().expand_paths([tmp_path / "tests"], jobs=jobs)

        assert [r.filename for r in results] == [
            str(tmp_path / "tests" / name) for name in ("test_a.py", "test_b.py", "test_c.py")
        ]
        a, b, c = results
        assert a.ok and a.changed
        assert not b.ok
        assert b.diagnostics[0].kind == SYNTAX_ERROR_KIND
        assert b.source == b.original
        assert c.ok and not c.changed
