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
"""Runs the narrative field tasks for a study."""

import logging

from ..exceptions import IncompleteNarrativeError
from ..models import MUST_SUCCEED_FIELDS, NarrativeFields
from ..study import Study
from .backend import NarrativeBackend
from .tasks import NARRATIVE_TASKS, FieldTask

logger = logging.getLogger(__name__)


async def run_field_task(task: FieldTask, study: Study, backend: NarrativeBackend) -> str:
    """Produce one narrative field.

    A shortcut result is returned as-is. Otherwise the backend is called once
    and output rejected by the task's validator is replaced by its fallback
    (or an empty string when the task has none). Backend errors propagate.
    """
    if task.shortcut is not None:
        text = task.shortcut(study)
        if text is not None:
            return text

    if task.prompt is None:
        return ""

    prompt = task.prompt(study)
    text = (
        await backend.complete(
            prompt.text,
            system_prompt=prompt.system_prompt,
            temperature=prompt.temperature,
        )
    ).strip()

    if task.validator(text):
        return text

    logger.info("Rejected generated %s for %s; using fallback", task.name, study.nct_id)
    return task.fallback(study) if task.fallback else ""


class NarrativeGenerator:
    """Generates all patient-facing narrative fields of a study, one call at a time."""

    def __init__(
        self,
        backend: NarrativeBackend,
        tasks: tuple[FieldTask, ...] = NARRATIVE_TASKS,
    ) -> None:
        self.backend = backend
        self.tasks = tasks

    async def generate(self, study: Study) -> NarrativeFields:
        """Run every field task sequentially.

        Raises:
            IncompleteNarrativeError: if a must-succeed field is still empty.
        """
        values = {}
        for task in self.tasks:
            values[task.name] = await run_field_task(task, study, self.backend)

        fields = NarrativeFields(**values)
        missing = fields.missing(MUST_SUCCEED_FIELDS)
        if missing:
            raise IncompleteNarrativeError(missing)
        return fields
