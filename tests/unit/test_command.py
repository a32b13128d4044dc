"""Unit tests for cmdgraph.command: option kinds, Command preparation,
execution through a scripted tool, and the Tool binding.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from cmdgraph.command.invoker import Command, InvocationResult
from cmdgraph.command.spec import FLAG, STRING, Identifiable, TypedArg, canonical
from cmdgraph.command.tool import Tool
from cmdgraph.config import ConfigError, EngineConfig
from cmdgraph.errors import UsageError
from cmdgraph.process.errors import CommandFailedError
from cmdgraph.process.options import RunOptions


class Region:
    def __init__(self, name: str) -> None:
        self.name = name

    def canonical_identifier(self) -> str:
        return f"region:{self.name}"


class Vob:
    def __init__(self, tag: str) -> None:
        self.tag = tag

    def canonical_identifier(self) -> str:
        return self.tag


MKVIEW_SPEC = {
    "-tag": STRING,
    "-region": TypedArg(Region),
    "-snapshot": FLAG,
}

CHECKIN_SPEC = {
    "-comment": STRING,
    "-identical": FLAG,
}


# ===========================================================================
# Option kinds and canonical values
# ===========================================================================


class TestOptionKinds:
    def test_flag_takes_no_value(self) -> None:
        assert FLAG.takes_value is False

    def test_string_and_typed_take_values(self) -> None:
        assert STRING.takes_value is True
        assert TypedArg(Region).takes_value is True

    def test_typed_repr_names_class(self) -> None:
        assert repr(TypedArg(Region)) == "TypedArg(Region)"
        assert repr(FLAG) == "FLAG"


class TestCanonical:
    def test_string_passes_through(self) -> None:
        assert canonical("main") == "main"

    def test_identifiable_uses_its_identifier(self) -> None:
        region = Region("west")
        assert isinstance(region, Identifiable)
        assert canonical(region) == "region:west"

    def test_integer_is_formatted(self) -> None:
        assert canonical(42) == "42"

    def test_path_is_converted(self) -> None:
        assert canonical(Path("/storage/v.vws")) == "/storage/v.vws"

    def test_bool_is_rejected(self) -> None:
        with pytest.raises(UsageError):
            canonical(True)

    def test_plain_object_is_rejected(self) -> None:
        with pytest.raises(UsageError) as info:
            canonical(object(), "mkview")
        assert info.value.command == "mkview"
        assert str(info.value).startswith("mkview: ")


# ===========================================================================
# Command.prepare
# ===========================================================================


class TestPrepare:
    def test_full_argv_with_typed_option(self, tool) -> None:
        region = Region("west")
        cmd = Command(tool, "mkview", MKVIEW_SPEC)
        cmd.prepare("-tag", "view1", "-region", region, "/storage/view1.vws")
        assert cmd.argv == [
            "mkview", "-tag", "view1", "-region", "region:west", "/storage/view1.vws",
        ]
        assert cmd.opt("-region") is region
        assert cmd.opt("-tag") == "view1"
        assert cmd.args == ["/storage/view1.vws"]

    def test_prepare_returns_self(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC)
        assert cmd.prepare("-snapshot") is cmd

    def test_flag_has_no_value(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-snapshot", "-tag", "v")
        assert cmd.argv == ["mkview", "-snapshot", "-tag", "v"]
        assert cmd.has_opt("-snapshot")
        assert cmd.opt("-snapshot") is None

    def test_undeclared_flag_is_rejected_before_running(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC)
        with pytest.raises(UsageError) as info:
            cmd.prepare("-bogus")
        assert "-bogus" in str(info.value)
        assert tool.calls == []

    def test_missing_value_is_rejected(self, tool) -> None:
        with pytest.raises(UsageError) as info:
            Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag")
        assert "no value" in str(info.value)

    def test_typed_option_of_wrong_kind_is_rejected(self, tool) -> None:
        with pytest.raises(UsageError) as info:
            Command(tool, "mkview", MKVIEW_SPEC).prepare("-region", Vob("/vobs/src"))
        assert "Region" in str(info.value)

    def test_typed_option_accepts_a_name(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-region", "west")
        assert cmd.argv == ["mkview", "-region", "west"]
        assert cmd.original_options == {}

    def test_string_option_accepts_identifiable(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", Vob("v1"))
        assert cmd.actual_options == {"-tag": "v1"}

    def test_positional_objects_are_coerced(self, tool) -> None:
        cmd = Command(tool, "lsvob", {}).prepare(Vob("/vobs/a"), 3)
        assert cmd.args == ["/vobs/a", "3"]

    def test_positional_without_identifier_is_rejected(self, tool) -> None:
        with pytest.raises(UsageError):
            Command(tool, "lsvob", {}).prepare(object())

    def test_no_comment_flag_injected(self, tool) -> None:
        cmd = Command(tool, "checkin", CHECKIN_SPEC).prepare("file.c")
        assert cmd.argv == ["checkin", "-nc", "file.c"]

    def test_no_comment_flag_not_injected_with_comment(self, tool) -> None:
        cmd = Command(tool, "checkin", CHECKIN_SPEC).prepare("-comment", "fix", "file.c")
        assert cmd.argv == ["checkin", "-comment", "fix", "file.c"]

    def test_no_comment_flag_needs_comment_in_spec(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v")
        assert "-nc" not in cmd.argv

    def test_mapping_overrides_run_options(self, tool) -> None:
        cmd = Command(tool, "lsview", {}).prepare({"leave_stdout": False}, "v1")
        assert cmd.options.leave_stdout is False
        assert cmd.args == ["v1"]

    def test_unknown_run_option_is_rejected(self, tool) -> None:
        with pytest.raises(UsageError):
            Command(tool, "lsview", {}).prepare({"leave_everything": True})

    def test_reprepare_starts_from_base_options(self, tool) -> None:
        cmd = Command(tool, "lsview", {})
        cmd.prepare({"leave_stdout": False})
        cmd.prepare()
        assert cmd.options.leave_stdout is True


class TestAdjusting:
    def test_set_args_replaces_positionals(self, tool) -> None:
        cmd = Command(tool, "rename", {}).prepare("new")
        cmd.set_args(Vob("old"), "new")
        assert cmd.argv == ["rename", "old", "new"]

    def test_set_opt_bypasses_spec(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare()
        region = Region("east")
        cmd.set_opt("-region", region)
        cmd.set_opt("-force")
        assert cmd.argv == ["mkview", "-region", "region:east", "-force"]
        assert cmd.opt("-region") is region

    def test_absent_option_is_none(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare()
        assert cmd.opt("-tag") is None
        assert not cmd.has_opt("-tag")


# ===========================================================================
# Command.run and retval
# ===========================================================================


class TestRun:
    def test_runs_argv_through_tool(self, tool) -> None:
        Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v1", "/s/v1.vws").run()
        assert tool.calls == [["mkview", "-tag", "v1", "/s/v1.vws"]]

    def test_success_status_is_true(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v1")
        result = cmd.run()
        assert result.status is True
        assert result.exit_code == 0
        assert bool(result)
        assert cmd.status is True

    def test_failure_status_is_false(self, tool) -> None:
        tool.respond(status=2)
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v1")
        result = cmd.run()
        assert result.status is False
        assert result.exit_code == 2
        assert not result
        assert cmd.status is False

    def test_status_is_none_before_run(self, tool) -> None:
        assert Command(tool, "mkview", MKVIEW_SPEC).prepare().status is None

    def test_default_result_unpacks_to_status(self, tool) -> None:
        (status,) = Command(tool, "mkview", MKVIEW_SPEC).prepare().run()
        assert status is True

    def test_captured_stdout_is_returned(self, tool) -> None:
        tool.respond(stdout="v1\nv2\n")
        status, lines = Command(tool, "lsview", {}).prepare({"leave_stdout": False}).run()
        assert status is True
        assert lines == ["v1", "v2"]

    def test_failure_raises_when_not_returned_as_status(self, tool) -> None:
        tool.respond(status=1)
        cmd = Command(tool, "rmview", {}, RunOptions(leave_stderr=True))
        with pytest.raises(CommandFailedError):
            cmd.prepare("v1").run()

    def test_status_true_when_failure_would_raise(self, tool) -> None:
        cmd = Command(tool, "rmview", {}, RunOptions(leave_stdout=True, leave_stderr=True))
        cmd.prepare("v1").run()
        assert cmd.status is True

    def test_retval_before_run_is_a_usage_error(self, tool) -> None:
        with pytest.raises(UsageError):
            Command(tool, "mkview", MKVIEW_SPEC).prepare().retval()

    def test_retval_substitutes_status(self, tool) -> None:
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v1")
        cmd.run()
        view = object()
        result = cmd.retval(view)
        assert isinstance(result, InvocationResult)
        assert result.status is view
        assert cmd.status is view

    def test_retval_without_override_keeps_status(self, tool) -> None:
        tool.respond(status=1)
        cmd = Command(tool, "mkview", MKVIEW_SPEC).prepare("-tag", "v1")
        cmd.run()
        assert cmd.retval().status is False


# ===========================================================================
# Tool
# ===========================================================================


class TestTool:
    def test_prepends_path(self, python) -> None:
        status, lines = Tool(python).run(
            ["-c", "print('via tool')"], return_failure_as_status=True, leave_stderr=True
        )
        assert status == 0
        assert lines == ["via tool"]

    def test_command_is_bound_to_tool(self, tool) -> None:
        cmd = tool.command("mkview", MKVIEW_SPEC)
        assert cmd.tool is tool
        assert cmd.name == "mkview"

    def test_from_config(self, python) -> None:
        config = EngineConfig(tool_path=python, verbose=True)
        built = Tool.from_config(config)
        assert built.path == python
        assert built.engine.config is config

    def test_from_config_without_path(self) -> None:
        with pytest.raises(ConfigError):
            Tool.from_config(EngineConfig())

    def test_run_command_prepares_and_runs(self, tool) -> None:
        result = tool.run_command("mkview", MKVIEW_SPEC, "-tag", "v1", "/s/v1.vws")
        assert isinstance(result, InvocationResult)
        assert result.status is True
        assert tool.calls == [["mkview", "-tag", "v1", "/s/v1.vws"]]

    def test_run_command_reports_failure_as_status(self, tool) -> None:
        tool.respond(status=3)
        result = tool.run_command("rmview", {}, "v1")
        assert result.status is False
        assert result.exit_code == 3

    def test_run_command_rejects_bad_args_before_running(self, tool) -> None:
        with pytest.raises(UsageError):
            tool.run_command("mkview", MKVIEW_SPEC, "-bogus")
        assert tool.calls == []
