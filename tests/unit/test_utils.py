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

from datetime import date

import pytest
from conftest import make_study

from py_sync_ctgov.study import Study
from py_sync_ctgov.utils import normalize_date, status_fields

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024", date(2024, 1, 1)),
        ("2024-03", date(2024, 3, 1)),
        ("2024-03-17", date(2024, 3, 17)),
        (None, None),
        ("", None),
        ("March 2024", None),
        ("2024-13", None),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_status_fields_extracts_normalized_columns():
    fields = status_fields(Study(make_study(start_date="2024-03")))

    assert fields["overall_status"] == "RECRUITING"
    assert fields["start_date"] == date(2024, 3, 1)
    assert fields["completion_date"] == date(2026, 12, 31)
    assert fields["primary_completion_date"] is None
    assert fields["last_update_date"] is None
    assert fields["conditions"] == ["Hidradenitis Suppurativa"]
    assert fields["keywords"] == ["HS"]
