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

import pytest
from conftest import GOOD_TEXT, FakeBackend, make_study

from py_sync_ctgov.narrative import prompts, tasks
from py_sync_ctgov.narrative.generator import run_field_task
from py_sync_ctgov.narrative.tasks import NARRATIVE_TASKS, rejects_phrases
from py_sync_ctgov.study import Study

pytestmark = pytest.mark.unit

TASKS = {task.name: task for task in NARRATIVE_TASKS}


async def run(name, study, backend):
    return await run_field_task(TASKS[name], Study(study), backend)


def test_every_narrative_field_has_one_task():
    assert list(TASKS) == [
        "short_title",
        "summary",
        "purpose",
        "treatments",
        "design",
        "eligibility",
        "participation",
        "leadership",
        "prior_research",
        "locations",
    ]


def test_rejects_phrases_is_case_insensitive_and_checks_length():
    validate = rejects_phrases(["learn more"], min_length=10)
    assert validate("A sufficiently long answer.")
    assert not validate("We hope to LEARN MORE about it.")
    assert not validate("short")


@pytest.mark.asyncio
async def test_strict_short_title_for_interventional_study():
    backend = FakeBackend("Adalimumab for Hidradenitis Suppurativa")

    title = await run("short_title", make_study(), backend)

    assert title == "Adalimumab for Hidradenitis Suppurativa"
    call = backend.calls[0]
    assert "Format EXACTLY" in call["prompt"]
    assert "Drug(s): Adalimumab" in call["prompt"]
    assert call["temperature"] == 0.1
    assert call["system_prompt"] is None


@pytest.mark.asyncio
async def test_loose_short_title_for_observational_study():
    backend = FakeBackend("Living With Skin Lumps")

    await run("short_title", make_study(study_type="OBSERVATIONAL", interventions=[]), backend)

    call = backend.calls[0]
    assert "3-5 words" in call["prompt"]
    assert call["temperature"] == 0.2


@pytest.mark.asyncio
async def test_summary_uses_system_prompt(backend):
    assert await run("summary", make_study(), backend) == GOOD_TEXT
    assert backend.calls[0]["system_prompt"]
    assert backend.calls[0]["temperature"] == 0.3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "answer",
    [
        "This study aims to better understand hidradenitis and how adalimumab may help patients.",
        "Too short.",
        "",
    ],
)
async def test_purpose_falls_back_on_hedging_or_short_output(answer):
    purpose = await run("purpose", make_study(), FakeBackend(answer))
    assert purpose == prompts.PURPOSE_FALLBACK


@pytest.mark.asyncio
async def test_purpose_keeps_valid_output(backend):
    assert await run("purpose", make_study(), backend) == GOOD_TEXT


@pytest.mark.asyncio
async def test_treatments_bypass_generation_without_interventions(backend):
    text = await run("treatments", make_study(interventions=[]), backend)

    assert text == tasks.NO_INTERVENTIONS
    assert backend.calls == []


@pytest.mark.asyncio
async def test_treatments_fall_back_to_named_interventions():
    study = make_study(interventions=["Adalimumab", "Placebo"])
    backend = FakeBackend("Please paste the full protocol so I can answer.")

    text = await run("treatments", study, backend)

    assert text == "The study is testing Adalimumab, Placebo."


@pytest.mark.asyncio
async def test_observational_design_without_text_is_fixed(backend):
    study = make_study(study_type="OBSERVATIONAL", detailed_description="")

    assert await run("design", study, backend) == tasks.OBSERVATIONAL_DESIGN
    assert backend.calls == []


@pytest.mark.asyncio
async def test_observational_design_prompt(backend):
    await run("design", make_study(study_type="OBSERVATIONAL"), backend)
    assert "observational study works" in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_interventional_design_prompt_includes_arms(backend):
    await run("design", make_study(), backend)
    prompt = backend.calls[0]["prompt"]
    assert "STEP BY STEP" in prompt
    assert "Active: Adalimumab weekly" in prompt
    assert "RANDOMIZED" in prompt


@pytest.mark.asyncio
async def test_eligibility_prompt_uses_criteria_text(backend):
    await run("eligibility", make_study(eligibility="Adults with Hurley stage II"), backend)
    assert "Adults with Hurley stage II" in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_participation_short_source_skips_generation(backend):
    study = make_study(detailed_description="", brief_summary="Too short.")

    assert await run("participation", study, backend) == tasks.PARTICIPATION_FALLBACK
    assert backend.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "answer",
    [
        "It looks like the study text was not provided, so I cannot summarize it.",
        "Visits.",
    ],
)
async def test_participation_rejects_apologies(answer):
    text = await run("participation", make_study(), FakeBackend(answer))
    assert text == tasks.PARTICIPATION_FALLBACK


@pytest.mark.asyncio
async def test_leadership_without_sponsor_or_contacts(backend):
    study = make_study(sponsor=None, contacts=[])

    assert await run("leadership", study, backend) == tasks.NO_LEADERSHIP
    assert backend.calls == []


@pytest.mark.asyncio
async def test_leadership_with_sponsor_only(backend):
    text = await run("leadership", make_study(contacts=[]), backend)

    assert text == "This study is being run by Example Pharma."
    assert backend.calls == []


@pytest.mark.asyncio
async def test_leadership_with_contacts_is_generated(backend):
    await run("leadership", make_study(), backend)
    prompt = backend.calls[0]["prompt"]
    assert "Sponsor: Example Pharma" in prompt
    assert "Jane Doe (555-0100, jane@example.org)" in prompt


@pytest.mark.asyncio
async def test_prior_research_forbids_citations(backend):
    await run("prior_research", make_study(), backend)
    assert "Do NOT invent study names" in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_locations_are_formatted_without_generation(backend):
    study = make_study(
        locations=[
            {"city": "Boston", "state": "Massachusetts", "country": "United States"},
            {"city": "Lyon", "country": "France"},
        ],
    )

    text = await run("locations", study, backend)

    assert text == "Boston, Massachusetts, United States; Lyon, France"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_no_locations_means_decentralized(backend):
    assert await run("locations", make_study(locations=[]), backend) == tasks.DECENTRALIZED


@pytest.mark.asyncio
async def test_backend_errors_propagate():
    def boom(prompt):
        raise RuntimeError("backend down")

    with pytest.raises(RuntimeError, match="backend down"):
        await run("summary", make_study(), FakeBackend(boom))
