# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import pytest

import adapters.probe.ping as ping_mod
from adapters.probe.base import ProbeExecutionError
from adapters.probe.ping import PingProbe, ping_command


class FakeProcess:
    def __init__(self, returncode: int) -> None:
        self._returncode = returncode

    async def wait(self) -> int:
        return self._returncode

    def kill(self) -> None:
        pass


def test_unix_command(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(ping_mod.sys, "platform", "linux")

    assert ping_command("10.0.0.9") == ["ping", "-c", "1", "-W", "1", "10.0.0.9"]


def test_windows_command(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(ping_mod.sys, "platform", "win32")

    assert ping_command("10.0.0.9") == ["ping", "-n", "1", "-w", "1000", "10.0.0.9"]


@pytest.mark.parametrize("returncode,expected", [(0, True), (1, False), (2, False)])
def test_exit_status_is_the_answer(monkeypatch: pytest.MonkeyPatch, returncode: int, expected: bool):
    seen: list[tuple] = []

    async def fake_exec(*cmd, **kwargs):
        seen.append(cmd)
        return FakeProcess(returncode)

    monkeypatch.setattr(ping_mod.asyncio, "create_subprocess_exec", fake_exec)

    assert asyncio.run(PingProbe().probe("wled.local")) is expected
    assert seen[0][-1] == "wled.local"


def test_missing_binary_raises_execution_error(monkeypatch: pytest.MonkeyPatch):
    async def fake_exec(*cmd, **kwargs):
        raise FileNotFoundError("ping")

    monkeypatch.setattr(ping_mod.asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(ProbeExecutionError):
        asyncio.run(PingProbe().probe("wled.local"))


def test_hung_process_is_killed_and_unreachable(monkeypatch: pytest.MonkeyPatch):
    killed: list[bool] = []

    class HungProcess(FakeProcess):
        async def wait(self) -> int:
            if killed:
                return -9
            await asyncio.sleep(10)
            return 0

        def kill(self) -> None:
            killed.append(True)

    async def fake_exec(*cmd, **kwargs):
        return HungProcess(0)

    monkeypatch.setattr(ping_mod.asyncio, "create_subprocess_exec", fake_exec)
    monkeypatch.setattr(ping_mod, "PROBE_PROCESS_GRACE_S", 0.0)

    assert asyncio.run(PingProbe(timeout_s=0.05).probe("wled.local")) is False
    assert killed == [True]
