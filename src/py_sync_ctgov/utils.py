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
"""Utility functions for the application."""

import re
from datetime import date
from typing import Any

from .study import Study

_PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?(?:-(\d{2}))?$")

STATUS_DATE_STRUCTS = {
    "start_date": "startDateStruct",
    "primary_completion_date": "primaryCompletionDateStruct",
    "completion_date": "completionDateStruct",
    "last_update_date": "lastUpdatePostDateStruct",
}


def normalize_date(value: str | None) -> date | None:
    """
    Coerces a registry partial date to a full date.
    'YYYY' and 'YYYY-MM' default the missing parts to 01.
    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    match = _PARTIAL_DATE.match(value.strip())
    if not match:
        return None
    year, month, day = match.groups()
    try:
        return date(int(year), int(month or 1), int(day or 1))
    except ValueError:
        return None


def status_fields(study: Study) -> dict[str, Any]:
    """Extracts the normalized status, date and condition columns of a study."""
    fields: dict[str, Any] = {
        "overall_status": study.overall_status or None,
        "conditions": study.conditions,
        "keywords": study.keywords,
    }
    for column, struct_name in STATUS_DATE_STRUCTS.items():
        fields[column] = normalize_date(study.status_date(struct_name))
    return fields
