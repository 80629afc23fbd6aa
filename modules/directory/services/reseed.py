"""
Reseed/Reset Engine.

Destructive development-time reset: wipe the local employees and
municipalities, wipe the remote collections and photos, reseed the default
dataset and push it back.

The reset only runs in a development context (see ``is_development_context``)
and never raises: every step is logged and the first failing step aborts the
rest. The outcome is returned as a ResetReport.
"""

import logging
import sys
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.sync_manager import SyncResult
from modules.directory.core.config import DirectorySettings
from modules.directory.models import Employee, Municipality
from modules.directory.services import seed_data
from modules.directory.services.identity import IdentityResolver
from modules.directory.services.mappers import EntityKind
from modules.directory.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def _stdout_is_terminal() -> bool:
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def is_development_context(settings: DirectorySettings) -> bool:
    """
    Decide whether destructive development tooling may run.

    Production never qualifies. The explicit preview flag always does.
    Otherwise debug mode must be on and either a debugger is attached or the
    process runs in a terminal.
    """
    if settings.environment.strip().lower() == "production":
        return False
    if settings.preview_mode:
        return True
    if not settings.debug:
        return False
    return sys.gettrace() is not None or _stdout_is_terminal()


# =============================================================================
# Seeding
# =============================================================================


@dataclass
class SeedSummary:
    employees: int = 0
    municipalities: int = 0
    regional_created: int = 0
    regional_updated: int = 0


async def seed_defaults(session: AsyncSession, resolver: Optional[IdentityResolver] = None) -> SeedSummary:
    """
    Insert the default dataset into the session (caller commits).

    Employees and municipalities always get fresh UUIDs, so call this on an
    emptied store. Regional offices are upserted by composite key and never
    duplicate.
    """
    resolver = resolver or IdentityResolver()
    summary = SeedSummary()

    for region, roster in seed_data.EMPLOYEE_ROSTERS.items():
        for name, role in roster:
            session.add(Employee(
                uuid=uuid.uuid4(),
                name=name,
                role=role or "",
                region=region,
                extension="",
                mobile="",
                email="",
                favorite=False,
            ))
            summary.employees += 1

    for name, region in seed_data.MUNICIPALITIES:
        session.add(Municipality(uuid=uuid.uuid4(), name=name, region=region, favorite=False))
        summary.municipalities += 1

    for office in seed_data.REGIONAL_OFFICES:
        resolution = await resolver.upsert_regional_info(
            session, {"nome": office.name, "ramal": office.extension}
        )
        info = resolution.record
        info.name = office.name
        info.chief = office.chief
        info.extension = office.extension
        info.address = office.address
        if resolution.created:
            summary.regional_created += 1
        else:
            summary.regional_updated += 1

    await session.flush()
    logger.info(
        f"Seeded {summary.employees} employees, {summary.municipalities} municipalities, "
        f"{summary.regional_created} new / {summary.regional_updated} updated regional offices"
    )
    return summary


# =============================================================================
# Reset
# =============================================================================


@dataclass
class ResetStep:
    name: str
    succeeded: bool
    count: int = 0
    error: Optional[str] = None


@dataclass
class ResetReport:
    """Outcome of a full reset, one entry per executed step."""

    steps: List[ResetStep] = field(default_factory=list)
    aborted_at: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.aborted_at is None and all(step.succeeded for step in self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "aborted_at": self.aborted_at,
            "steps": [
                {"name": s.name, "succeeded": s.succeeded, "count": s.count, "error": s.error}
                for s in self.steps
            ],
        }


class ReseedEngine:
    """
    Development-only wipe and reseed.

    Args:
        engine: Sync engine (remote writes go through it).
        settings: Directory settings (development gate).
    """

    def __init__(self, engine: SyncEngine, settings: DirectorySettings) -> None:
        self._engine = engine
        self._settings = settings

    async def reset_if_development(self) -> Optional[ResetReport]:
        """Run the full reset when allowed; otherwise log and return None."""
        if not is_development_context(self._settings):
            logger.info("Reset skipped: not a development context")
            return None
        return await self.perform_full_reset()

    async def perform_full_reset(self) -> ResetReport:
        """
        Wipe local -> wipe remote -> seed -> push. Stops at the first failure.
        """
        report = ResetReport()
        store = self._engine.store
        logger.warning("Starting full directory reset")

        async def wipe_local() -> int:
            async with store.transaction():
                employees = await store.batch_delete(Employee)
                municipalities = await store.batch_delete(Municipality)
            return employees + municipalities

        async def seed() -> int:
            async with store.transaction():
                summary = await store.perform(
                    lambda session: seed_defaults(session, self._engine.resolver)
                )
            return summary.employees + summary.municipalities

        steps: List[Tuple[str, Callable[[], Awaitable[Any]]]] = [
            ("wipe_local", wipe_local),
            ("wipe_remote_employees", lambda: self._engine.wipe_remote(EntityKind.EMPLOYEE)),
            ("wipe_remote_municipalities", lambda: self._engine.wipe_remote(EntityKind.MUNICIPALITY)),
            ("seed", seed),
            ("push_employees", lambda: self._engine.push_all(EntityKind.EMPLOYEE)),
            ("push_municipalities", lambda: self._engine.push_all(EntityKind.MUNICIPALITY)),
        ]

        for name, run in steps:
            step = await self._run_step(name, run)
            report.steps.append(step)
            if not step.succeeded:
                report.aborted_at = name
                logger.error(f"Reset aborted at '{name}': {step.error}")
                return report

        logger.warning("Full directory reset completed")
        return report

    @staticmethod
    async def _run_step(name: str, run: Callable[[], Awaitable[Any]]) -> ResetStep:
        try:
            outcome = await run()
        except Exception as e:
            logger.exception(f"Reset step '{name}' failed: {e}")
            return ResetStep(name=name, succeeded=False, error=f"{type(e).__name__}: {e}")

        if isinstance(outcome, SyncResult):
            step = ResetStep(
                name=name,
                succeeded=outcome.succeeded,
                count=outcome.count,
                error=outcome.error,
            )
        else:
            step = ResetStep(name=name, succeeded=True, count=int(outcome))

        if step.succeeded:
            logger.info(f"Reset step '{name}' done ({step.count})")
        return step
