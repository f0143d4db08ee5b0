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
"""Read-only accessors over a raw ClinicalTrials.gov v2 study record."""

from typing import Any


class Study:
    """Wraps the raw JSON of one study and exposes the sub-paths the pipeline reads.

    The underlying record is treated as opaque: missing modules or values
    resolve to empty strings or empty lists rather than raising.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self.data = data
        self._protocol: dict[str, Any] = data.get("protocolSection") or {}

    def _module(self, name: str) -> dict[str, Any]:
        return self._protocol.get(name) or {}

    @property
    def nct_id(self) -> str | None:
        return self._module("identificationModule").get("nctId") or None

    @property
    def title(self) -> str:
        return self._module("identificationModule").get("briefTitle") or ""

    @property
    def overall_status(self) -> str:
        return self._module("statusModule").get("overallStatus") or ""

    def status_date(self, struct_name: str) -> str | None:
        """Return the raw date string of a status date struct, e.g. ``startDateStruct``."""
        struct = self._module("statusModule").get(struct_name) or {}
        return struct.get("date")

    @property
    def conditions(self) -> list[str]:
        return list(self._module("conditionsModule").get("conditions") or [])

    @property
    def keywords(self) -> list[str]:
        return list(self._module("conditionsModule").get("keywords") or [])

    @property
    def study_type(self) -> str:
        return (self._module("designModule").get("studyType") or "").lower()

    @property
    def design(self) -> dict[str, Any]:
        return self._module("designModule")

    @property
    def intervention_names(self) -> list[str]:
        interventions = self._module("armsInterventionsModule").get("interventions") or []
        return [i["name"] for i in interventions if i.get("name")]

    @property
    def arm_groups(self) -> list[dict[str, Any]]:
        return list(self._module("armsInterventionsModule").get("armGroups") or [])

    @property
    def eligibility_criteria(self) -> str:
        return self._module("eligibilityModule").get("eligibilityCriteria") or ""

    @property
    def brief_summary(self) -> str:
        return self._module("descriptionModule").get("briefSummary") or ""

    @property
    def detailed_description(self) -> str:
        return self._module("descriptionModule").get("detailedDescription") or ""

    @property
    def lead_sponsor(self) -> str:
        sponsor = self._module("sponsorCollaboratorsModule").get("leadSponsor") or {}
        return sponsor.get("name") or ""

    @property
    def central_contacts(self) -> list[dict[str, Any]]:
        return list(self._module("contactsLocationsModule").get("centralContacts") or [])

    @property
    def locations(self) -> list[dict[str, Any]]:
        return list(self._module("contactsLocationsModule").get("locations") or [])

    def __repr__(self) -> str:
        return f"Study({self.nct_id!r})"
