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
"""Exceptions raised by the synchronization pipeline."""


class SyncError(Exception):
    """Base class for all pipeline errors."""


class UnknownTenantError(SyncError):
    """The active tenant has no keyword profile."""

    def __init__(self, tenant: str) -> None:
        super().__init__(f"Invalid tenant: {tenant!r}")
        self.tenant = tenant


class RegistryFetchError(SyncError):
    """The registry could not be queried; fatal for the whole run."""


class MissingStudyIdError(SyncError):
    """A fetched study carries no registry identifier."""


class IncompleteNarrativeError(SyncError):
    """One or more must-succeed narrative fields are empty after fallback."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Incomplete AI payload: {', '.join(fields)}")
        self.fields = fields
