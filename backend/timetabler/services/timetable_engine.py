from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
from time import perf_counter
from typing import Literal

from timetabler.core.exceptions import ExternalCollaboratorError, IncompleteCoverage
from timetabler.schemas.timetable import ScheduleParameters
from timetabler.services.catalog import AssignmentCatalog
from timetabler.services.commitments import CommitmentSnapshot, FacultyCommitmentMatrix
from timetabler.services.external_generator import CandidateSource, ExternalGenerationRequest
from timetabler.services.lab_planner import LabPlacement, LabPlacementPlanner
from timetabler.services.planning import PlanningState, Schedule
from timetabler.services.schedule_validator import ScheduleValidator, ValidationReport, ValidationWarning
from timetabler.services.theory_planner import RelaxedSlot, TheoryDistributionPlanner

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    schedule: Schedule
    source: Literal["local", "external"]
    warnings: list[ValidationWarning] = field(default_factory=list)
    relaxed_slots: list[RelaxedSlot] = field(default_factory=list)
    lab_placements: list[LabPlacement] = field(default_factory=list)
    runtime_ms: int = 0


class TimetableEngine:
    """Runs one generation call: commitments, candidate source or local planners, then validation."""

    def __init__(self, *, candidate_source: CandidateSource | None = None) -> None:
        self.candidate_source = candidate_source

    def generate(
        self,
        parameters: ScheduleParameters,
        catalog: AssignmentCatalog,
        snapshot: CommitmentSnapshot,
        *,
        seed: int | None = None,
        use_external: bool = True,
    ) -> GenerationResult:
        started = perf_counter()
        rng = random.Random(seed)
        commitments = FacultyCommitmentMatrix.build(
            snapshot,
            working_days=parameters.working_days,
            periods_per_day=parameters.periods_per_day,
        )
        logger.info(
            "Generating timetable: %s day(s) x %s period(s), %s assignment(s), %s commitment(s) from %s other schedule(s)",
            len(parameters.working_days),
            parameters.periods_per_day,
            len(catalog.assignments),
            len(commitments),
            len(snapshot.schedules),
        )
        validator = ScheduleValidator(parameters=parameters, catalog=catalog, commitments=commitments)

        result: GenerationResult | None = None
        if use_external and self.candidate_source is not None:
            result = self._try_external(parameters, catalog, validator)
        if result is None:
            result = self._run_local(parameters, catalog, commitments, validator, rng)

        result.runtime_ms = int((perf_counter() - started) * 1000)
        logger.info("Timetable generated from %s source in %sms", result.source, result.runtime_ms)
        return result

    def _try_external(
        self,
        parameters: ScheduleParameters,
        catalog: AssignmentCatalog,
        validator: ScheduleValidator,
    ) -> GenerationResult | None:
        request = ExternalGenerationRequest.from_catalog(catalog, parameters)
        try:
            candidate = self.candidate_source.produce_candidate(request)
        except ExternalCollaboratorError as exc:
            logger.warning("External candidate source failed: %s", exc.message)
            return None
        if candidate is None:
            return None

        report = validator.validate(candidate)
        if not report.complete:
            logger.warning(
                "External candidate leaves %s slot(s) empty after repair; using local planners",
                len(report.missing_slots),
            )
            return None
        if report.lab_violations:
            logger.warning(
                "External candidate breaks lab placement (%s); using local planners",
                "; ".join(f"{catalog.subject_label(item.subject_id)}: {item.message}" for item in report.lab_violations),
            )
            return None
        return GenerationResult(schedule=report.schedule, source="external", warnings=report.warnings)

    def _run_local(
        self,
        parameters: ScheduleParameters,
        catalog: AssignmentCatalog,
        commitments: FacultyCommitmentMatrix,
        validator: ScheduleValidator,
        rng: random.Random,
    ) -> GenerationResult:
        state = PlanningState(parameters=parameters, catalog=catalog, commitments=commitments)
        lab_placements = LabPlacementPlanner(state, rng=rng).plan()
        relaxed = TheoryDistributionPlanner(state, rng=rng).plan()

        report: ValidationReport = validator.validate(state.to_schedule())
        if not report.complete:
            raise IncompleteCoverage(report.missing_slots)
        return GenerationResult(
            schedule=report.schedule,
            source="local",
            warnings=report.warnings,
            relaxed_slots=relaxed,
            lab_placements=lab_placements,
        )
