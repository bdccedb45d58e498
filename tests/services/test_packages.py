import subprocess

from n8ndeployer.services.packages import PackageService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None


class FakeRunCmd:
    def __init__(self, returncode=0):
        self.returncode = returncode
        self.calls = []

    def __call__(self, cmd, check=True, **kwargs):
        self.calls.append((cmd, check, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr="")


def test_update_system_runs_update_upgrade_install_non_interactively():
    run_cmd = FakeRunCmd()

    PackageService(logger=DummyLogger(), run_cmd=run_cmd).update_system()

    commands = [cmd for cmd, _, _ in run_cmd.calls]
    assert commands[0] == ["apt-get", "update", "-y"]
    assert commands[1] == ["apt-get", "upgrade", "-y"]
    assert commands[2][:3] == ["apt-get", "install", "-y"]
    for package in ("ufw", "nginx", "certbot", "python3-certbot-nginx"):
        assert package in commands[2]
    for _, _, kwargs in run_cmd.calls:
        assert kwargs["env"] == {"DEBIAN_FRONTEND": "noninteractive"}


def test_remove_if_present_tolerates_failures():
    run_cmd = FakeRunCmd(returncode=100)

    PackageService(logger=DummyLogger(), run_cmd=run_cmd).remove_if_present(["docker.io", "runc"])

    cmd, check, _ = run_cmd.calls[0]
    assert cmd == ["apt-get", "remove", "-y", "docker.io", "runc"]
    assert check is False
