"""docker compose wrapper"""

from pathlib import Path

from n8ndeploy.installer.bootstrap import run_command


class Compose:
    """Run docker compose against a single manifest"""

    def __init__(self, compose_file: Path):
        self.compose_file = Path(compose_file)

    def exists(self) -> bool:
        return self.compose_file.is_file()

    def _cmd(self, *args: str) -> list:
        return ["docker", "compose", "-f", str(self.compose_file), *args]

    def down(self, check: bool = True) -> bool:
        """Stop and remove containers, including orphans"""
        result = run_command(self._cmd("down", "--remove-orphans"), check=check)
        return result.returncode == 0

    def pull(self) -> None:
        run_command(self._cmd("pull"), capture=False)

    def up(self) -> None:
        run_command(self._cmd("up", "-d", "--build"), capture=False)

    def logs(self, service: str, follow: bool = True) -> None:
        """Stream service logs to the terminal"""
        args = ["logs"]
        if follow:
            args.append("-f")
        run_command(self._cmd(*args, service), capture=False)

    def is_running(self, service: str) -> bool:
        """Whether the service has a running container"""
        result = run_command(
            self._cmd("ps", "--status", "running", "--services"),
            check=False,
        )
        if result.returncode != 0:
            return False
        return service in result.stdout.split()
