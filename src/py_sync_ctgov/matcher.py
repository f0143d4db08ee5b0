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
"""Classifies fetched studies as relevant to a tenant."""

from collections.abc import Mapping

from .config import DEFAULT_TENANT_PROFILES, TenantProfile
from .study import Study


def matches(
    study: Study,
    tenant_key: str,
    profiles: Mapping[str, TenantProfile] = DEFAULT_TENANT_PROFILES,
) -> bool:
    """Return True if the study's conditions fit the tenant's keyword profile.

    The joined, lowercased condition names must contain at least one required
    keyword and none of the excluded ones. Unknown tenants never match.
    """
    profile = profiles.get(tenant_key)
    if profile is None:
        return False

    haystack = " ".join(study.conditions).lower()

    if not any(term.lower() in haystack for term in profile.required):
        return False

    return not any(term.lower() in haystack for term in profile.exclude)
