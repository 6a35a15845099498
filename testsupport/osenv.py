"""Isolation of tests from the process environment."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

# Windows variables kept when the environment is cleared. Some are needed
# by the standard library (for example to find the temporary directory)
# and by the shell.
WINDOWS_VARIABLES = (
    "ALLUSERSPROFILE",
    "APPDATA",
    "CommonProgramFiles",
    "CommonProgramFiles(x86)",
    "CommonProgramW6432",
    "COMPUTERNAME",
    "ComSpec",
    "FP_NO_HOST_CHECK",
    "HOMEDRIVE",
    "HOMEPATH",
    "LOCALAPPDATA",
    "LOGONSERVER",
    "NUMBER_OF_PROCESSORS",
    "OS",
    "Path",
    "PATHEXT",
    "PROCESSOR_ARCHITECTURE",
    "PROCESSOR_IDENTIFIER",
    "PROCESSOR_LEVEL",
    "PROCESSOR_REVISION",
    "ProgramData",
    "ProgramFiles",
    "ProgramFiles(x86)",
    "ProgramW6432",
    "PROMPT",
    "PSModulePath",
    "PUBLIC",
    "SESSIONNAME",
    "SystemDrive",
    "SystemRoot",
    "TEMP",
    "TMP",
    "USERDOMAIN",
    "USERDOMAIN_ROAMINGPROFILE",
    "USERNAME",
    "USERPROFILE",
    "windir",
)

# Variables that control the tests themselves, kept on every platform.
TESTING_VARIABLES = ("JUJU_MONGOD",)


def _running_on_windows() -> bool:
    return sys.platform == "win32"


@dataclass
class OsEnvSuite:
    """Clears the environment for tests and restores it afterwards.

    The environment is saved and cleared in :meth:`set_up_suite`, cleared
    again around every test, and restored in :meth:`tear_down_suite`. A
    few whitelisted variables survive the clearing.
    """

    windows: bool = field(default_factory=_running_on_windows)
    _old_environment: dict[str, str] = field(default_factory=dict, repr=False)

    def _is_whitelisted(self, name: str) -> bool:
        if self.windows:
            # Names are case-insensitive on Windows; ASCII folding suffices.
            allowed = {var.lower() for var in (*WINDOWS_VARIABLES, *TESTING_VARIABLES)}
            return name.lower() in allowed
        return name in TESTING_VARIABLES

    def _clear_environment(self) -> None:
        os.environ.clear()
        for name, value in self._old_environment.items():
            if self._is_whitelisted(name):
                os.environ[name] = value

    def set_up_suite(self) -> None:
        """Save the current environment and clear it."""
        self._old_environment = dict(os.environ)
        self._clear_environment()

    def tear_down_suite(self) -> None:
        """Restore the environment saved by :meth:`set_up_suite`."""
        os.environ.clear()
        os.environ.update(self._old_environment)

    def set_up_test(self) -> None:
        """Clear the environment, keeping only whitelisted variables."""
        self._clear_environment()

    def tear_down_test(self) -> None:
        """Discard what the test set, keeping only whitelisted variables."""
        self._clear_environment()