"""Exceptions raised by deployment steps"""

from typing import List, Optional


class DeployError(Exception):
    """Base exception for deployment failures"""

    pass


class ConfigError(DeployError):
    """Required configuration is missing or invalid"""

    pass


class CommandError(DeployError):
    """An external command exited with a non-zero status"""

    def __init__(self, cmd: List[str], returncode: int, stderr: Optional[str] = None):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr or ""
        super().__init__(f"Command failed ({returncode}): {' '.join(cmd)}")


class DownloadError(DeployError):
    """The data archive could not be located or downloaded"""

    pass
