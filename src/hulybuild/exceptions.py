# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception hierarchy shared by the build, update and deploy drivers.
"""


class HulyBuildError(Exception):
    """Base exception for all hulybuild errors."""
    exit_code = 1


class ConfigurationError(HulyBuildError):
    """Raised for invalid or missing configuration (bad flags, unreadable settings)."""


class MissingSnapshotError(ConfigurationError):
    """Raised when check/update run before any build recorded its source."""
    exit_code = 2


class AcquisitionError(HulyBuildError):
    """Raised when the platform source tree cannot be obtained."""


class CommandError(HulyBuildError):
    """
    Raised when a required external command fails.

    :param result: The CommandResult of the failed invocation.
    """
    def __init__(self, result):
        self.result = result
        detail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else ""
        message = f"Command failed ({result.return_code}): {' '.join(result.command)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LockHeldError(HulyBuildError):
    """Raised when another update run holds the update lock."""
