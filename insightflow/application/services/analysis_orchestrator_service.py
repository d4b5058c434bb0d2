"""Analysis orchestrator service.

Runs the two-phase insight extraction pipeline for one
(session, analysis type):

Phase 1 walks the discussions of the type's population one at a time,
asks the completion service for an extraction document and upserts a
DiscussionAnalysis. Discussions without messages are skipped and left
out of the progress denominator. A failed discussion is logged and the
loop moves on.

Phase 2 synthesizes every active DiscussionAnalysis of the type into a
single GlobalAnalysis. With none available the run fails with
"no individual analyses found".

Run bookkeeping lives on the session row: a claim moves analysis_status
to PROCESSING with a fresh run_id, and every later progress or status
write is conditional on the session still being PROCESSING for that
run_id. Progress is round_half_up(100 * attempted / total) capped at 99
during phase 1 and only reaches 100 together with COMPLETED.

Nothing is retried inside a run. The returned AnalysisRunResult tells
the caller whether re-running the whole job may help.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any
from uuid import UUID

from uuid6 import uuid7

from insightflow.application.ports.analysis_repository import AnalysisRepositoryProtocol
from insightflow.application.ports.completion_service import (
    CompletionServiceProtocol,
    ModelConfig,
)
from insightflow.application.ports.discussion_repository import (
    DiscussionRepositoryProtocol,
)
from insightflow.application.ports.progress_notifier import ProgressNotifierProtocol
from insightflow.application.ports.session_repository import SessionRepositoryProtocol
from insightflow.application.ports.time_authority import TimeAuthorityProtocol
from insightflow.application.prompts.analysis_prompts import (
    ANALYST_SYSTEM_PROMPT,
    build_extraction_prompt,
    build_synthesis_prompt,
)
from insightflow.application.services.base import LoggingMixin
from insightflow.application.services.session_access import (
    load_session,
    require_host,
    require_status,
)
from insightflow.domain.errors.analysis import (
    AnalysisAlreadyRunningError,
    ExternalServiceError,
    MalformedCompletionError,
)
from insightflow.domain.errors.session import (
    ConcurrencyConflictError,
    SessionArchivedError,
)
from insightflow.domain.exceptions import InsightflowError
from insightflow.domain.models.analysis import (
    AnalysisRules,
    AnalysisRunResult,
    AnalysisType,
    DiscussionAnalysis,
    GlobalAnalysis,
)
from insightflow.domain.models.discussion import Discussion
from insightflow.domain.models.progress import ProgressSnapshot
from insightflow.domain.models.session import AnalysisStatus, Session, SessionStatus
from insightflow.domain.models.session_context import SessionContext
from insightflow.domain.services.tally_ranking import phase_one_progress

NO_INDIVIDUAL_ANALYSES_REASON = "no individual analyses found"

MAX_CONDITIONAL_WRITE_ATTEMPTS = 5
RAW_EXCERPT_LENGTH = 200

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def parse_completion_document(raw: str) -> dict[str, Any]:
    """Parse a completion into a JSON object.

    Markdown code fences around the JSON are tolerated.

    Raises:
        MalformedCompletionError: If the text is not a JSON object.
    """
    text = raw.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedCompletionError(
            f"Completion is not valid JSON: {exc.msg}",
            raw_excerpt=raw[:RAW_EXCERPT_LENGTH],
        ) from exc
    if not isinstance(document, dict):
        raise MalformedCompletionError(
            f"Completion must be a JSON object, got {type(document).__name__}",
            raw_excerpt=raw[:RAW_EXCERPT_LENGTH],
        )
    return document


class AnalysisOrchestratorService(LoggingMixin):
    """Two-phase analysis pipeline with run-scoped progress tracking."""

    def __init__(
        self,
        session_repository: SessionRepositoryProtocol,
        discussion_repository: DiscussionRepositoryProtocol,
        analysis_repository: AnalysisRepositoryProtocol,
        completion_service: CompletionServiceProtocol,
        notifier: ProgressNotifierProtocol,
        time_authority: TimeAuthorityProtocol,
        model_config: ModelConfig | None = None,
    ) -> None:
        self._sessions = session_repository
        self._discussions = discussion_repository
        self._analyses = analysis_repository
        self._completion = completion_service
        self._notifier = notifier
        self._time = time_authority
        self._model_config = model_config or ModelConfig(temperature=0.3)
        self._init_logger(component="analysis")

    # =========================================================================
    # Job control
    # =========================================================================

    async def enqueue(
        self,
        ctx: SessionContext,
        session_id: UUID,
        analysis_type: str | AnalysisType,
    ) -> Session:
        """Mark an analysis of ``analysis_type`` as queued.

        Raises:
            InvalidAnalysisTypeError: If the type is unknown.
            InvalidStateError: If the session is not in AI discussion.
            AnalysisAlreadyRunningError: If a run is processing.
        """
        kind = AnalysisType.parse(analysis_type)
        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "run analysis")
        require_status(session, SessionStatus.AI_DISCUSSION, "queue analysis")
        if session.analysis_status == AnalysisStatus.PROCESSING:
            raise AnalysisAlreadyRunningError(session_id, session.analysis_run_id)

        try:
            stored = await self._sessions.update_if(
                session.with_analysis_queued(kind.value),
                SessionStatus.AI_DISCUSSION,
                session.version,
            )
        except ConcurrencyConflictError:
            current = await load_session(self._sessions, session_id)
            if current.analysis_status == AnalysisStatus.PROCESSING:
                raise AnalysisAlreadyRunningError(session_id, current.analysis_run_id) from None
            raise

        self._log_operation(
            "enqueue", session_id=str(session_id), analysis_type=kind.value
        ).info("analysis_queued")
        await self._publish(stored)
        return stored

    async def run(
        self,
        ctx: SessionContext,
        session_id: UUID,
        analysis_type: str | AnalysisType,
        rules: AnalysisRules | None = None,
    ) -> AnalysisRunResult:
        """Claim and execute one pipeline run.

        Pipeline failures (completion errors, no analyses to synthesize)
        end the run as FAILED and are reported in the result, not raised.

        Returns:
            AnalysisRunResult describing the run.

        Raises:
            InvalidAnalysisTypeError: If the type is unknown.
            SessionNotFoundError: If the session does not exist.
            NotSessionHostError: If the caller is not the host.
            InvalidStateError: If the session is not in AI discussion
                (SessionArchivedError once archived, also mid-run).
            AnalysisAlreadyRunningError: If another run is processing.
        """
        kind = AnalysisType.parse(analysis_type)
        type_rules = (rules or AnalysisRules()).for_type(kind)

        session = await load_session(self._sessions, session_id)
        require_host(session, ctx, "run analysis")
        session, run_id = await self._claim(session, kind)
        started = self._time.monotonic()

        log = self._log_operation(
            "run",
            session_id=str(session_id),
            analysis_type=kind.value,
            run_id=str(run_id),
        )
        log.info("analysis_run_started")

        population = [
            d
            for d in await self._discussions.list_by_session(session_id)
            if kind.includes(d.agent_type)
        ]
        discussions = [d for d in population if d.has_messages]
        skipped = len(population) - len(discussions)
        total = len(discussions)
        succeeded = failed = 0

        def result(
            status: AnalysisStatus,
            failure_reason: str | None = None,
            retryable: bool = False,
        ) -> AnalysisRunResult:
            return AnalysisRunResult(
                run_id=run_id,
                session_id=session_id,
                analysis_type=kind,
                status=status,
                total_discussions=total,
                succeeded=succeeded,
                failed=failed,
                skipped=skipped,
                failure_reason=failure_reason,
                retryable=retryable,
            )

        try:
            # Phase 1
            for attempted, discussion in enumerate(discussions, start=1):
                try:
                    content = await self._extract(kind, discussion, type_rules)
                except ExternalServiceError as exc:
                    failed += 1
                    log.warning(
                        "discussion_analysis_failed",
                        discussion_id=str(discussion.discussion_id),
                        error=str(exc),
                        error_type=type(exc).__name__,
                        retryable=exc.retryable,
                    )
                else:
                    session = await self._ensure_current(session_id, run_id)
                    await self._analyses.upsert_discussion_analysis(
                        DiscussionAnalysis.create(
                            session_id=session_id,
                            discussion_id=discussion.discussion_id,
                            analysis_type=kind,
                            content=content,
                            run_id=run_id,
                            created_at=self._time.now(),
                        )
                    )
                    succeeded += 1
                session = await self._write_progress(
                    session, run_id, phase_one_progress(attempted, total)
                )
                log.debug("discussion_processed", attempted=attempted, total=total)

            # Phase 2
            sources = await self._analyses.list_active_discussion_analyses(session_id, kind)
            if not sources:
                await self._fail(session, run_id, NO_INDIVIDUAL_ANALYSES_REASON)
                log.warning("analysis_run_failed", reason=NO_INDIVIDUAL_ANALYSES_REASON, skipped=skipped)
                return result(AnalysisStatus.FAILED, NO_INDIVIDUAL_ANALYSES_REASON)

            try:
                synthesis = await self._synthesize(kind, [s.content for s in sources], type_rules)
            except ExternalServiceError as exc:
                reason = f"synthesis failed: {exc}"
                await self._fail(session, run_id, reason)
                log.warning("analysis_run_failed", reason=reason, retryable=exc.retryable)
                return result(AnalysisStatus.FAILED, reason, retryable=exc.retryable)

            session = await self._ensure_current(session_id, run_id)
            await self._analyses.upsert_global_analysis(
                GlobalAnalysis.create(
                    session_id=session_id,
                    analysis_type=kind,
                    content=synthesis,
                    run_id=run_id,
                    source_count=len(sources),
                    created_at=self._time.now(),
                )
            )
            await self._conditional_write(session, run_id, lambda s: s.with_analysis_completed())
        except (SessionArchivedError, ConcurrencyConflictError):
            log.warning("analysis_run_interrupted")
            raise
        except Exception:
            log.exception("analysis_run_crashed")
            await self._fail_quietly(session_id, run_id, "internal error")
            raise

        log.info(
            "analysis_run_completed",
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            sources=len(sources),
            duration_ms=round((self._time.monotonic() - started) * 1000, 1),
        )
        return result(AnalysisStatus.COMPLETED)

    # =========================================================================
    # Completion calls
    # =========================================================================

    async def _extract(
        self,
        kind: AnalysisType,
        discussion: Discussion,
        rules: Any,
    ) -> dict[str, Any]:
        prompt = build_extraction_prompt(kind, discussion.transcript(), rules)
        raw = await self._completion.complete(
            prompt, self._model_config, system_prompt=ANALYST_SYSTEM_PROMPT
        )
        return parse_completion_document(raw)

    async def _synthesize(
        self,
        kind: AnalysisType,
        contents: list[dict[str, Any]],
        rules: Any,
    ) -> dict[str, Any]:
        prompt = build_synthesis_prompt(kind, contents, rules)
        raw = await self._completion.complete(
            prompt, self._model_config, system_prompt=ANALYST_SYSTEM_PROMPT
        )
        return parse_completion_document(raw)

    # =========================================================================
    # Run bookkeeping
    # =========================================================================

    async def _claim(self, session: Session, kind: AnalysisType) -> tuple[Session, UUID]:
        require_status(session, SessionStatus.AI_DISCUSSION, "run analysis")
        if session.analysis_status == AnalysisStatus.PROCESSING:
            raise AnalysisAlreadyRunningError(session.session_id, session.analysis_run_id)

        run_id = uuid7()
        try:
            claimed = await self._sessions.update_if(
                session.with_analysis_claimed(run_id, kind.value),
                SessionStatus.AI_DISCUSSION,
                session.version,
            )
        except ConcurrencyConflictError:
            current = await load_session(self._sessions, session.session_id)
            if current.analysis_status == AnalysisStatus.PROCESSING:
                raise AnalysisAlreadyRunningError(
                    session.session_id, current.analysis_run_id
                ) from None
            raise

        superseded = await self._analyses.supersede_active(session.session_id, kind)
        self._log_operation(
            "claim",
            session_id=str(session.session_id),
            run_id=str(run_id),
        ).info("analysis_run_claimed", superseded=superseded)
        await self._publish(claimed)
        return claimed, run_id

    @staticmethod
    def _check_current(session: Session, run_id: UUID) -> None:
        if session.status == SessionStatus.ARCHIVED:
            raise SessionArchivedError(session_id=session.session_id, operation="write analysis")
        if (
            session.analysis_status != AnalysisStatus.PROCESSING
            or session.analysis_run_id != run_id
        ):
            raise ConcurrencyConflictError(
                session_id=session.session_id,
                expected_status=SessionStatus.AI_DISCUSSION,
                actual_status=session.status,
                operation=f"analysis write for run {run_id}",
            )

    async def _ensure_current(self, session_id: UUID, run_id: UUID) -> Session:
        """Refetch the session and check the run still owns it."""
        session = await load_session(self._sessions, session_id)
        self._check_current(session, run_id)
        return session

    async def _conditional_write(
        self,
        session: Session,
        run_id: UUID,
        mutate: Callable[[Session], Session | None],
    ) -> Session:
        """Apply ``mutate`` only while the run still owns the session.

        The write is retried on a version conflict as long as the refetched
        session is still PROCESSING for this run. ``mutate`` may return
        None to skip the write.
        """
        for _ in range(MAX_CONDITIONAL_WRITE_ATTEMPTS):
            self._check_current(session, run_id)
            updated = mutate(session)
            if updated is None:
                return session
            try:
                stored = await self._sessions.update_if(updated, session.status, session.version)
            except ConcurrencyConflictError:
                session = await load_session(self._sessions, session.session_id)
                continue
            await self._publish(stored)
            return stored
        raise ConcurrencyConflictError(
            session_id=session.session_id,
            expected_status=SessionStatus.AI_DISCUSSION,
            actual_status=session.status,
            operation=f"analysis write for run {run_id}",
        )

    async def _write_progress(self, session: Session, run_id: UUID, progress: int) -> Session:
        return await self._conditional_write(
            session,
            run_id,
            lambda s: s.with_analysis_progress(progress) if progress > s.analysis_progress else None,
        )

    async def _fail(self, session: Session, run_id: UUID, reason: str) -> Session:
        return await self._conditional_write(
            session, run_id, lambda s: s.with_analysis_failed(reason)
        )

    async def _fail_quietly(self, session_id: UUID, run_id: UUID, reason: str) -> None:
        try:
            session = await load_session(self._sessions, session_id)
            await self._fail(session, run_id, reason)
        except InsightflowError as exc:
            self._log_operation(
                "fail", session_id=str(session_id), run_id=str(run_id)
            ).warning("analysis_failure_not_recorded", error=str(exc))

    async def _publish(self, session: Session) -> None:
        await self._notifier.publish(ProgressSnapshot.from_session(session))
