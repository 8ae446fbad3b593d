from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Protocol

import httpx
from pydantic import BaseModel, RootModel, ValidationError

from timetabler.core.config import Settings
from timetabler.core.exceptions import ExternalCollaboratorError
from timetabler.schemas.timetable import ScheduleParameters, TimetableEntryPayload
from timetabler.services.catalog import AssignmentCatalog
from timetabler.services.planning import afternoon_threshold

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert academic timetable scheduling assistant. Your PRIMARY rule is: "
    "NO subject should repeat on the same day (except labs which need consecutive periods). "
    "Create varied, balanced schedules. Always respond with valid JSON only."
)


@dataclass(frozen=True)
class ExternalGenerationRequest:
    working_days: tuple[str, ...]
    periods_per_day: int
    assignments: tuple[dict, ...]
    guidelines: dict = field(default_factory=dict)

    @classmethod
    def from_catalog(cls, catalog: AssignmentCatalog, parameters: ScheduleParameters) -> "ExternalGenerationRequest":
        return cls(
            working_days=tuple(parameters.working_days),
            periods_per_day=parameters.periods_per_day,
            assignments=tuple(catalog.describe()),
            guidelines=parameters.guidelines.model_dump(),
        )

    @property
    def total_slots(self) -> int:
        return len(self.working_days) * self.periods_per_day

    def to_prompt(self) -> str:
        labs = [item for item in self.assignments if item["is_lab"]]
        theory = [item for item in self.assignments if not item["is_lab"]]
        lab_periods = sum(item["duration"] for item in {row["subject_id"]: row for row in labs}.values())
        theory_subjects = len({item["subject_id"] for item in theory})
        per_subject = (self.total_slots - lab_periods) // max(theory_subjects, 1)

        lines = [
            "Generate a weekly class timetable with STRICT constraints.",
            "",
            f"Working Days: {', '.join(self.working_days)}",
            f"Periods Per Day: {self.periods_per_day}",
            f"Total Slots Per Week: {self.total_slots}",
            "",
            "Faculty-Subject Assignments (use these exact IDs):",
        ]
        for item in self.assignments:
            kind = f"LAB ({item['duration']} consecutive periods)" if item["is_lab"] else "THEORY"
            lines.append(
                f'- Subject: "{item["subject"]}" (ID: {item["subject_id"]}) | '
                f'Faculty: "{item["faculty"]}" (ID: {item["faculty_id"]}) | TYPE: {kind}'
            )
        lines.extend(
            [
                "",
                "Rules:",
                "1. A theory subject appears at most once per day.",
                "2. Each lab appears exactly once per week as one block of consecutive periods.",
                f"3. Each theory subject needs about {per_subject} periods per week spread over different days.",
                f"4. Labs should be in the afternoon (periods {afternoon_threshold(self.periods_per_day)}-{self.periods_per_day}).",
                "5. Use only the subject_id and faculty_id values listed above.",
                "",
                f"Return a JSON object keyed by day. Each day must list periods 1 to {self.periods_per_day}:",
                '{"monday": [{"period": 1, "subject_id": "...", "faculty_id": "...", "is_lab": false}], ...}',
            ]
        )
        return "\n".join(lines)


class ExternalCandidate(RootModel[dict[str, list[TimetableEntryPayload]]]):
    pass


class ChatMessage(BaseModel):
    content: str | None = None


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletion(BaseModel):
    choices: list[ChatChoice]


class CandidateSource(Protocol):
    name: str

    def produce_candidate(self, request: ExternalGenerationRequest) -> dict | None:
        ...


class OpenAIChatCandidateSource:
    """Asks an OpenAI-compatible chat completion endpoint for a whole-week candidate."""

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4-turbo-preview",
        temperature: float = 0.5,
        max_tokens: int = 4000,
        timeout_seconds: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatCandidateSource | None":
        if not settings.external_generator_available:
            return None
        return cls(
            api_key=settings.openai_api_key or "",
            base_url=settings.openai_base_url,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            timeout_seconds=settings.openai_timeout_seconds,
        )

    def _body(self, request: ExternalGenerationRequest) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request.to_prompt()},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

    def _post(self, body: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}/chat/completions"
        if self._client is not None:
            return self._client.post(url, json=body, headers=headers, timeout=self.timeout_seconds)
        with httpx.Client(timeout=self.timeout_seconds) as client:
            return client.post(url, json=body, headers=headers)

    def request_candidate(self, request: ExternalGenerationRequest) -> dict:
        try:
            response = self._post(self._body(request))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExternalCollaboratorError(f"Chat completion request failed: {exc}") from exc

        try:
            completion = ChatCompletion.model_validate(response.json())
            if not completion.choices or not completion.choices[0].message.content:
                raise ExternalCollaboratorError("Chat completion returned no content")
            parsed = json.loads(completion.choices[0].message.content)
            candidate = ExternalCandidate.model_validate(parsed)
        except (ValueError, ValidationError) as exc:
            raise ExternalCollaboratorError(f"Invalid schedule format from external generator: {exc}") from exc

        return {
            day.strip().lower(): [entry.model_dump() for entry in entries]
            for day, entries in candidate.root.items()
        }

    def produce_candidate(self, request: ExternalGenerationRequest) -> dict | None:
        try:
            return self.request_candidate(request)
        except ExternalCollaboratorError as exc:
            logger.warning("External generation failed, falling back to local planners: %s", exc.message)
            return None
