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
Directory-based mutual exclusion for update runs.
"""
import os
import shutil
import signal
from typing import Optional

from ..exceptions import LockHeldError

LOCK_NAME = ".update.lock"


def _raise_exit(signum, frame):
    raise SystemExit(128 + signum)


class UpdateLock:
    """
    Holds the update lock for the duration of a `with` block.

    mkdir is atomic, so two runs can never both create the directory. The lock
    has no timeout; a stale one is removed with force=True.
    """
    def __init__(self, root_dir: str, force: bool = False):
        """
        :param root_dir: Deployment directory.
        :param force: Remove an existing lock before acquiring.
        """
        self.path = os.path.join(root_dir, LOCK_NAME)
        self.force = force
        self.held = False
        self._previous_handler = None
        self._handler_installed = False

    def acquire(self):
        """
        Creates the lock directory.

        :raises LockHeldError: If another run holds the lock.
        """
        if self.force and os.path.isdir(self.path):
            print("Forcing removal of existing update lock...")
            shutil.rmtree(self.path)
        try:
            os.mkdir(self.path)
        except FileExistsError:
            raise LockHeldError(
                f"Another update is in progress (lock: {self.path}). Use --force to override."
            ) from None
        self.held = True

    def release(self):
        if self.held:
            shutil.rmtree(self.path, ignore_errors=True)
            self.held = False

    def __enter__(self) -> "UpdateLock":
        self.acquire()
        # SIGTERM unwinds through __exit__ so the lock is not left behind
        try:
            self._previous_handler = signal.signal(signal.SIGTERM, _raise_exit)
            self._handler_installed = True
        except ValueError:
            # not the main thread
            pass
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if self._handler_installed:
            signal.signal(signal.SIGTERM, self._previous_handler or signal.SIG_DFL)
            self._handler_installed = False
        self.release()
        return None
