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
"""Prompt builders for each narrative field."""

from ..study import Study

PURPOSE_FALLBACK = (
    "The purpose of this study is to evaluate a specific treatment approach "
    "described by the study team."
)


def short_title_strict(study: Study) -> str:
    drugs = ", ".join(study.intervention_names) or "Not specified"
    conditions = ", ".join(study.conditions) or "Not specified"
    return f"""
Create a short, patient-friendly study title.

Rules (must follow ALL):
- Format EXACTLY: [Drug or Drugs] for [Specific disease or tumor]
- Use the SPECIFIC tumor or condition being treated
- If the condition occurs within a larger disorder, name only the tumor
- Use real drug name(s)
- 3-6 words total
- No punctuation
- No phase numbers
- Do NOT use the words "study", "trial", or "treatment"

Drug(s): {drugs}
Condition being treated: {conditions}

Return ONLY the title.
"""


def short_title_loose(study: Study) -> str:
    return f"""
You are writing a short, patient-facing title for a clinical research study.

Rules:
- 3-5 words
- Clear and descriptive
- Written for patients
- No punctuation
- No phase numbers

Conditions: {", ".join(study.conditions)}

Study description: {study.brief_summary}
"""


def summary(study: Study) -> str:
    conditions = ", ".join(study.conditions) or "the condition being studied"
    study_type = study.study_type or "observational"
    interventions = ", ".join(study.intervention_names) or "None"
    return f"""
Write ONE clear, patient-friendly summary paragraph (5-7 sentences).

Explain:
1. The specific disease or tumor being treated (be precise)
2. What type of study this is (interventional or observational)
3. What drug, device, or approach is being tested
4. What type of drug or approach this is and how it works in simple terms
5. What participants are asked to do
6. How the information from the study will be used

STRICT RULES (must follow ALL):
- Use plain text only
- DO NOT use markdown, asterisks (*), bold, italics, or symbols
- Always name the SPECIFIC disease or tumor being treated
- If the condition is part of a genetic disorder, name the tumor, not the disorder
- If a drug is tested, explain how it works in ONE simple sentence
- Do NOT promise benefit
- Do NOT describe disease biology in detail
- Do NOT mention missing or unclear information
- Calm, neutral, plain language
- One paragraph only

Study type: {study_type}
Condition or tumor treated: {conditions}
Drug(s) or intervention(s): {interventions}
"""


def purpose(study: Study) -> str:
    source = "\n\n".join(
        text for text in (study.brief_summary, study.detailed_description) if text
    )
    drugs = ", ".join(study.intervention_names) or "Not specified"
    return f"""
Answer this question for a patient:

"What is the purpose of this study?"

STRICT RULES (must follow ALL):
- Clearly state WHAT drug, therapy, or approach is being tested
- Clearly state the SPECIFIC disease, tumor, or condition being treated
- Explain WHAT the study is measuring (for example: tumor shrinkage, safety, side effects, symptom control)
- Use concrete, plain language
- Do NOT describe disease biology
- Do NOT use vague phrases like "to better understand", "researchers want to learn more", "being evaluated", "for future research"
- Do NOT mention missing information
- Do NOT mention ClinicalTrials.gov
- 2-3 sentences total

If the purpose cannot be clearly determined, return EXACTLY this sentence:
"{PURPOSE_FALLBACK}"

Indication: {", ".join(study.conditions)}
Drug(s) or intervention(s): {drugs}
Study description: {source}
"""


def treatments(study: Study) -> str:
    return f"""
Answer this question for a patient: "What treatments are being tested?"

Rules:
- Clearly name the treatment(s)
- If the study does not explain how they work, say so briefly and neutrally
- Do NOT mention missing text
- Do NOT ask for more information
- Do NOT speculate
- 1-2 sentences
- Plain language

Treatments: {", ".join(study.intervention_names)}
"""


def design_observational(study: Study) -> str:
    text = study.detailed_description or study.design.get("description") or ""
    return f"""
Explain how this observational study works.

Rules:
- Describe what information is collected and how participants are followed
- Mention surveys, interviews, medical record review, imaging, or follow-ups if listed
- Do NOT describe treatments or assignments
- Do NOT ask for more information
- Do NOT mention missing text
- 2-4 sentences
- Plain language

Text: {text}
"""


def design_interventional(study: Study) -> str:
    design = study.design
    arms = "\n".join(
        f"{arm.get('label', '')}: {arm.get('description') or ''}"
        for arm in study.arm_groups
    )
    parts = (
        design.get("studyType"),
        design.get("allocation"),
        design.get("interventionModel"),
        design.get("masking"),
        arms,
        study.detailed_description,
    )
    source = "\n\n".join(str(part) for part in parts if part)
    return f"""
Explain how this study works for someone who joins.

Rules:
- Describe STEP BY STEP what participants will do
- Mention groups and what each group receives, if applicable
- Mention surveys, interviews, videos, navigation, follow-ups if listed
- Do NOT define study types
- Do NOT use generic phrases like "the study team will explain"
- 3-5 sentences
- Must be specific to this study

Text: {source}
"""


def eligibility(study: Study) -> str:
    return f"""
Create two bullet lists:
- Who may be able to join
- Who may not be able to join

Rules:
- Use only the eligibility text
- Plain language
- No extra explanations

Text: {study.eligibility_criteria}
"""


def participation(study: Study) -> str:
    return f"""
You are writing for patients. Answer the question: "What is participation like?"

STRICT RULES:
- Describe what participants actually DO
- Mention visits, procedures, surveys, imaging, medications, or follow-ups if listed
- If randomized, say participants may be assigned to a group
- Do NOT mention missing information
- Do NOT say text was not provided
- Do NOT hedge or apologize
- Do NOT ask questions
- 2-3 sentences MAX
- Plain, neutral language
- Use ONLY the text provided

Text: {participation_source(study)}
"""


def participation_source(study: Study) -> str:
    return study.detailed_description or study.brief_summary


def leadership(study: Study) -> str:
    contacts = "\n".join(
        f"{c.get('name', '')} ({c.get('phone') or 'no phone listed'}, "
        f"{c.get('email') or 'no email listed'})"
        for c in study.central_contacts
    )
    return f"""
Explain who is running the study.

Rules:
- Use plain text only
- Do NOT ask the reader for information
- Do NOT say "share it and I can add it"
- Do NOT mention missing information
- Name the sponsor
- List contact details exactly as provided
- Short and factual

Sponsor: {study.lead_sponsor}
Contacts:
{contacts}
"""


def prior_research(study: Study) -> str:
    conditions = ", ".join(study.conditions) or "Not specified"
    interventions = ", ".join(study.intervention_names) or "Not specified"
    return f"""
You are writing a short "Prior Research" section for a patient-facing clinical trial summary.
This section should summarize general background research related to the condition and treatment.

Important rules:
- Do NOT claim that this trial itself produced these results
- Do NOT invent study names, years, authors, or citations
- Speak generally (e.g. "previous studies have shown...", "earlier research suggests...")
- If little is known, say so clearly
- 1-2 short paragraphs, plain language

Condition: {conditions}
Treatment / Intervention: {interventions}
"""
