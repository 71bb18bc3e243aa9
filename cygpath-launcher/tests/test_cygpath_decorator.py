"""Test cygpath_decorator module - executable path translation on Windows launchers."""
import logging
import os
import subprocess
from unittest.mock import patch

import pytest

import cancellation
import cygwin_locator
from channel import LocalChannel, RemoteTaskError
from cygpath_decorator import CygpathLauncher, CygpathLauncherDecorator, FALLBACK_CYGPATH
from cygwin_locator import CygwinNotFoundError
from fakes import FakeChannel, FakeLauncher
from launcher import LaunchRequest, Node


NODE = Node("win-agent")


def decorated(**kwargs):
    base = FakeLauncher(unix=False, **kwargs)
    return base, CygpathLauncherDecorator().decorate(base, NODE)


class TestDecorate:
    def test_unix_launcher_returned_as_is(self):
        base = FakeLauncher(unix=True)
        assert CygpathLauncherDecorator().decorate(base, NODE) is base

    def test_windows_launcher_wrapped(self):
        base, launcher = decorated()
        assert isinstance(launcher, CygpathLauncher)
        assert launcher.base is base
        assert launcher.node is NODE

    def test_wrapper_keeps_platform_classification(self):
        _, launcher = decorated()
        assert launcher.is_unix() is False

    def test_wrapper_forwards_channel(self):
        channel = FakeChannel("x")
        _, launcher = decorated(channel=channel)
        assert launcher.get_channel() is channel


class TestBareCommandNames:
    def test_single_token_untouched(self):
        base, launcher = decorated(cygpath_output=b"/should/not/be/used\n")
        launcher.launch(LaunchRequest(["make", "all"]))
        assert base.launched[0].cmds == ["make", "all"]
        assert base.translation_requests == []

    def test_empty_command_untouched(self):
        base, launcher = decorated()
        assert launcher.cygpath([]) == []
        assert base.requests == []

    @pytest.mark.parametrize("exe", ["C:\\tools\\build.exe", "tools/build.exe", "./build.exe", "..\\build.exe"])
    def test_any_separator_triggers_translation(self, exe):
        base, launcher = decorated(cygpath_output=b"translated\n")
        launcher.launch(LaunchRequest([exe]))
        assert len(base.translation_requests) == 1
        assert base.launched[0].cmds == ["translated"]


class TestTranslation:
    def test_windows_path_rewritten(self):
        base, launcher = decorated(cygpath_output=b"/cygdrive/c/tools/build.exe\n")
        launcher.launch(LaunchRequest(["C:\\tools\\build.exe", "--flag"]))
        assert base.launched[0].cmds == ["/cygdrive/c/tools/build.exe", "--flag"]

    def test_translation_command_line(self):
        base, launcher = decorated(cygpath_output=b"x\n")
        launcher.launch(LaunchRequest(["C:\\tools\\build.exe", "--flag"]))
        request = base.translation_requests[0]
        assert request.cmds == [FALLBACK_CYGPATH, "-w", "C:\\tools\\build.exe"]
        assert request.stdout is not None

    def test_arguments_keep_order(self):
        base, launcher = decorated(cygpath_output=b"/bin/tool\n")
        launcher.launch(LaunchRequest(["C:\\bin\\tool.exe", "-a", "C:\\in.txt", "b c"]))
        assert base.launched[0].cmds == ["/bin/tool", "-a", "C:\\in.txt", "b c"]

    def test_nonzero_exit_keeps_original(self):
        base, launcher = decorated(cygpath_output=b"/garbage\n", cygpath_exit=1)
        launcher.launch(LaunchRequest(["C:\\tools\\build.exe"]))
        assert base.launched[0].cmds == ["C:\\tools\\build.exe"]

    @pytest.mark.parametrize("output", [b"", b"\n", b"  \r\n\t"])
    def test_blank_output_keeps_original(self, output):
        base, launcher = decorated(cygpath_output=output)
        launcher.launch(LaunchRequest(["C:\\tools\\build.exe"]))
        assert base.launched[0].cmds == ["C:\\tools\\build.exe"]

    def test_caller_request_not_mutated(self):
        base, launcher = decorated(cygpath_output=b"/cygdrive/c/a.exe\n")
        request = LaunchRequest(["C:\\a.exe", "x"], env={"A": "1"})
        launcher.launch(request)
        assert request.cmds == ["C:\\a.exe", "x"]
        assert base.launched[0] is not request
        base.launched[0].env["A"] = "2"
        assert request.env == {"A": "1"}

    def test_other_request_fields_forwarded(self, tmp_path):
        base, launcher = decorated(cygpath_output=b"/a\n")
        sink = object()
        launcher.launch(LaunchRequest(["C:\\a.exe"], pwd=tmp_path, env={"K": "V"}, stdout=sink))
        launched = base.launched[0]
        assert launched.pwd == tmp_path
        assert launched.env == {"K": "V"}
        assert launched.stdout is sink

    def test_returns_base_proc(self):
        base, launcher = decorated(cygpath_output=b"/a\n")
        proc = launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert proc is base.procs[-1]
        assert proc.request is base.launched[0]

    def test_base_launch_failure_propagates(self):
        _, launcher = decorated(cygpath_output=b"/a\n", launch_error=FileNotFoundError("no such file"))
        with pytest.raises(FileNotFoundError, match="no such file"):
            launcher.launch(LaunchRequest(["C:\\a.exe"]))

    def test_no_timeout_by_default(self):
        base, launcher = decorated(cygpath_output=b"/a\n")
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert base.procs[0].join_timeout is None

    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("CYGPATH_TIMEOUT", "5")
        base, launcher = decorated(cygpath_output=b"/a\n")
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert base.procs[0].join_timeout == 5.0


class TestTranslationFailures:
    def test_tool_missing_keeps_original(self):
        base, launcher = decorated(cygpath_error=FileNotFoundError("cygpath"))
        launcher.launch(LaunchRequest(["C:\\a.exe", "x"]))
        assert base.launched[0].cmds == ["C:\\a.exe", "x"]

    def test_timeout_keeps_original(self):
        base, launcher = decorated(join_error=subprocess.TimeoutExpired("cygpath", 5))
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert base.launched[0].cmds == ["C:\\a.exe"]

    def test_failure_logged(self, caplog):
        _, launcher = decorated(cygpath_error=OSError("broken pipe"))
        with caplog.at_level(logging.WARNING, logger="cygpath.decorator"):
            launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert "launching it as given" in caplog.text
        assert "broken pipe" in caplog.text

    def test_interrupt_resignaled(self):
        base, launcher = decorated(join_error=InterruptedError())
        launcher.launch(LaunchRequest(["C:\\a.exe", "x"]))
        assert base.launched[0].cmds == ["C:\\a.exe", "x"]
        assert cancellation.is_interrupted() is True

    def test_no_interrupt_on_success(self):
        _, launcher = decorated(cygpath_output=b"/a\n")
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert cancellation.is_interrupted() is False


class TestGetCygpathExe:
    @patch("cygwin_locator.subprocess.run")
    def test_no_channel_falls_back_without_registry(self, mock_run):
        _, launcher = decorated()
        assert launcher.get_cygpath_exe() == "cygpath"
        mock_run.assert_not_called()

    def test_channel_result_used(self):
        channel = FakeChannel("C:\\cygwin64\\bin\\cygpath")
        base, launcher = decorated(channel=channel, cygpath_output=b"/cygdrive/c/a.exe\n")
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert base.translation_requests[0].cmds[0] == "C:\\cygwin64\\bin\\cygpath"
        assert channel.calls == [cygwin_locator.get_cygpath_exe]

    @pytest.mark.parametrize("error", [
        CygwinNotFoundError("Failed to locate Cygwin installation. Is Cygwin installed?"),
        RemoteTaskError("boom", "CygwinNotFoundError"),
    ])
    def test_locator_failure_keeps_original(self, error):
        base, launcher = decorated(channel=FakeChannel(error=error))
        launcher.launch(LaunchRequest(["C:\\a.exe"]))
        assert base.translation_requests == []
        assert base.launched[0].cmds == ["C:\\a.exe"]

    @patch("cygwin_locator.subprocess.run")
    def test_local_channel_runs_locator(self, mock_run):
        mock_run.return_value.returncode = 0
        mock_run.return_value.stdout = (
            "\r\nHKEY_LOCAL_MACHINE\\SOFTWARE\\Wow6432Node\\Cygwin\\setup\r\n"
            "    rootdir    REG_SZ    C:\\cygwin64\r\n\r\n"
        )
        _, launcher = decorated(channel=LocalChannel())
        assert launcher.get_cygpath_exe() == os.path.join("C:\\cygwin64", "bin", "cygpath")


class TestLaunchChannel:
    def test_agent_command_rewritten(self):
        base, launcher = decorated(cygpath_output=b"/cygdrive/c/agent/agent.exe\n")
        cmd = ["C:\\agent\\agent.exe", "-jar"]
        out = object()
        launcher.launch_channel(cmd, out, "C:\\work", {"A": "1"})
        assert base.channel_launches == [(["/cygdrive/c/agent/agent.exe", "-jar"], out, "C:\\work", {"A": "1"})]
        assert cmd == ["C:\\agent\\agent.exe", "-jar"]

    def test_bare_agent_command_untouched(self):
        base, launcher = decorated()
        launcher.launch_channel(("java", "-jar", "agent.jar"), None)
        assert base.channel_launches[0][0] == ["java", "-jar", "agent.jar"]
        assert base.translation_requests == []

    def test_returns_base_channel(self):
        _, launcher = decorated()
        channel = launcher.launch_channel(["java"], None)
        assert channel.result == "C:\\cygwin64\\bin\\cygpath"


class TestKill:
    def test_passthrough(self):
        base, launcher = decorated()
        launcher.kill({"BUILD_ID": "42"})
        assert base.kills == [{"BUILD_ID": "42"}]
        assert base.requests == []
