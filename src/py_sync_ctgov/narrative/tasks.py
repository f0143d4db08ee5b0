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
"""Task descriptors for the narrative fields.

Every field is described the same way: an optional deterministic shortcut,
a prompt builder, an output validator and a fallback. ``run_field_task`` in
``generator.py`` is the only code that interprets these descriptors.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import NamedTuple

from ..study import Study
from . import prompts
from .backend import SYSTEM_PROMPT

NO_INTERVENTIONS = "This study does not test a specific drug or device."
OBSERVATIONAL_DESIGN = (
    "This is an observational study where researchers collect information over "
    "time without assigning treatments or interventions."
)
PARTICIPATION_FALLBACK = "The study team will explain what participation involves."
NO_LEADERSHIP = "This study is being run by the study team listed on ClinicalTrials.gov."
DECENTRALIZED = "This is a decentralized study, which means it can be done remotely."

PURPOSE_DENY_LIST = (
    "better understand",
    "learn more",
    "future research",
    "being evaluated",
    "being reviewed",
    "focuses on",
    "not enough information",
)
TREATMENTS_DENY_LIST = (
    "paste",
    "provide more",
    "not enough information",
    "cannot determine",
    "i need more",
)
PARTICIPATION_DENY_LIST = (
    "not provided",
    "wasn't provided",
    "missing",
    "no information",
    "cannot summarize",
    "can't summarize",
    "please",
    "paste",
    "looks like",
    "based on the text provided",
)

MIN_PARTICIPATION_SOURCE = 40


class Prompt(NamedTuple):
    text: str
    temperature: float = 0.3
    system_prompt: str | None = SYSTEM_PROMPT


Validator = Callable[[str], bool]


def non_empty(text: str) -> bool:
    return bool(text.strip())


def rejects_phrases(phrases: Iterable[str], min_length: int = 1) -> Validator:
    """Build a validator failing short output or output containing any phrase."""
    lowered = tuple(p.lower() for p in phrases)

    def validate(text: str) -> bool:
        if len(text) < min_length:
            return False
        haystack = text.lower()
        return not any(phrase in haystack for phrase in lowered)

    return validate


@dataclass(frozen=True)
class FieldTask:
    """How one narrative field is produced from a study."""

    name: str
    prompt: Callable[[Study], Prompt] | None = None
    validator: Validator = non_empty
    fallback: Callable[[Study], str] | None = None
    # Returns the final text without calling the backend, or None to generate.
    shortcut: Callable[[Study], str | None] | None = None


def _short_title_prompt(study: Study) -> Prompt:
    if study.study_type == "interventional" and study.intervention_names:
        return Prompt(prompts.short_title_strict(study), temperature=0.1, system_prompt=None)
    return Prompt(prompts.short_title_loose(study), temperature=0.2, system_prompt=None)


def _treatments_shortcut(study: Study) -> str | None:
    return None if study.intervention_names else NO_INTERVENTIONS


def _treatments_fallback(study: Study) -> str:
    return f"The study is testing {', '.join(study.intervention_names)}."


def _design_shortcut(study: Study) -> str | None:
    if study.study_type != "observational":
        return None
    if study.detailed_description or study.design.get("description"):
        return None
    return OBSERVATIONAL_DESIGN


def _design_prompt(study: Study) -> Prompt:
    if study.study_type == "observational":
        return Prompt(prompts.design_observational(study))
    return Prompt(prompts.design_interventional(study))


def _participation_shortcut(study: Study) -> str | None:
    if len(prompts.participation_source(study).strip()) < MIN_PARTICIPATION_SOURCE:
        return PARTICIPATION_FALLBACK
    return None


def _leadership_shortcut(study: Study) -> str | None:
    sponsor = study.lead_sponsor
    if study.central_contacts:
        return None
    if sponsor:
        return f"This study is being run by {sponsor}."
    return NO_LEADERSHIP


def format_locations(study: Study) -> str:
    """Join each site's city, state and country; no generation involved."""
    sites = []
    for location in study.locations:
        parts = [location.get(key) for key in ("city", "state", "country")]
        site = ", ".join(part for part in parts if part)
        if site:
            sites.append(site)
    return "; ".join(sites) or DECENTRALIZED


def _simple(builder: Callable[[Study], str]) -> Callable[[Study], Prompt]:
    return lambda study: Prompt(builder(study))


NARRATIVE_TASKS: tuple[FieldTask, ...] = (
    FieldTask(name="short_title", prompt=_short_title_prompt),
    FieldTask(name="summary", prompt=_simple(prompts.summary)),
    FieldTask(
        name="purpose",
        prompt=_simple(prompts.purpose),
        validator=rejects_phrases(PURPOSE_DENY_LIST, min_length=60),
        fallback=lambda study: prompts.PURPOSE_FALLBACK,
    ),
    FieldTask(
        name="treatments",
        prompt=_simple(prompts.treatments),
        validator=rejects_phrases(TREATMENTS_DENY_LIST),
        fallback=_treatments_fallback,
        shortcut=_treatments_shortcut,
    ),
    FieldTask(name="design", prompt=_design_prompt, shortcut=_design_shortcut),
    FieldTask(name="eligibility", prompt=_simple(prompts.eligibility)),
    FieldTask(
        name="participation",
        prompt=_simple(prompts.participation),
        validator=rejects_phrases(PARTICIPATION_DENY_LIST, min_length=20),
        fallback=lambda study: PARTICIPATION_FALLBACK,
        shortcut=_participation_shortcut,
    ),
    FieldTask(
        name="leadership",
        prompt=_simple(prompts.leadership),
        shortcut=_leadership_shortcut,
    ),
    FieldTask(name="prior_research", prompt=_simple(prompts.prior_research)),
    FieldTask(name="locations", shortcut=format_locations),
)
