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
Generation of per-run image tag suffixes.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

TAG_FORMAT = "%Y%m%d%H%M%S%f"

_last_issued: Optional[datetime] = None


def new_tag_suffix(now: Optional[datetime] = None) -> str:
    """
    Returns a fixed-width UTC timestamp usable as a docker tag suffix.

    Successive calls in one process never return the same or an earlier value,
    even when the clock has not advanced.

    :param now: Timestamp to use instead of the current time.
    :return: Tag suffix such as '20240615103000123456'.
    """
    global _last_issued
    stamp = now or datetime.now(timezone.utc)
    if _last_issued is not None and stamp <= _last_issued:
        stamp = _last_issued + timedelta(microseconds=1)
    _last_issued = stamp
    return stamp.strftime(TAG_FORMAT)
