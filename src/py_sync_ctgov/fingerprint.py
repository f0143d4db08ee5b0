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
"""Derives the change fingerprint of a study."""

import hashlib
import json

from .study import Study


def fingerprint(study: Study) -> str:
    """Return the SHA-256 hex digest of the fields that warrant regeneration.

    Only the title, conditions, eligibility criteria and overall status take
    part, serialized in a fixed key order.
    """
    payload = json.dumps(
        {
            "title": study.title,
            "conditions": study.conditions,
            "eligibility": study.eligibility_criteria,
            "status": study.overall_status,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
