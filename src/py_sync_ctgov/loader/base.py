# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
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
"""Defines the abstract base class for trial record stores."""

import abc
import types
from contextlib import AbstractAsyncContextManager

from ..models import TrialRecord


class BaseStore(abc.ABC):
    """Abstract Base Class for the datastores holding synchronized trials.

    Stores are async context managers that own their connection. Writes
    that must be atomic run inside ``transaction()``.
    """

    @abc.abstractmethod
    async def __aenter__(self) -> "BaseStore":
        """Open the connection to the datastore."""
        raise NotImplementedError

    @abc.abstractmethod
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Close the connection."""
        raise NotImplementedError

    @abc.abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Commit the enclosed operations on success, roll them back on error."""
        raise NotImplementedError

    @abc.abstractmethod
    async def prepare_schema(self) -> None:
        """Create the trials table if it does not exist. Must be idempotent."""
        raise NotImplementedError

    @abc.abstractmethod
    async def fetch_trial(
        self, tenant: str, nct_id: str, *, for_update: bool = False,
    ) -> TrialRecord | None:
        """Load the stored record for a tenant and registry ID.

        Args:
            tenant: The tenant key.
            nct_id: The registry identifier.
            for_update: Lock the row until the enclosing transaction ends.

        Returns:
            The record including its manual overrides, or None.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def save_trial(self, record: TrialRecord) -> None:
        """Insert or update a record keyed by (tenant, nct_id).

        Manual override columns are never written.
        """
        raise NotImplementedError
