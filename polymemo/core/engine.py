from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from polymemo.core.levels import DifficultyPolicy
from polymemo.core.progress import ProgressStore
from polymemo.core.scoring import score_round
from polymemo.core.session import Outcome, Phase, RoundResult, SessionState
from polymemo.core.shapes import Cell, ShapeGenerator
from polymemo.core.timers import Countdown, TimerController, TimerKind, TimerSnapshot

logger = logging.getLogger(__name__)


class RoundEngine(QObject):
    """Runs play sessions: memorize, recall, evaluate, then advance, retry or end.

    The phase is a single ``Phase`` value; pausing is tracked separately in
    ``SessionState.is_paused`` and leaves the phase untouched. Every transition
    runs synchronously inside the call or timer callback that triggers it.
    Requests that are not legal in the current phase are ignored.

    Presentation and audio collaborators observe the engine through its
    signals and drive it through the public methods.
    """

    phase_changed = Signal(object)
    tick = Signal(object, int)
    round_started = Signal(int)
    shape_revealed = Signal(object)
    selection_changed = Signal(object)
    round_passed = Signal(float, int)
    round_failed = Signal(float, int)
    game_over = Signal(int, int)
    paused_changed = Signal(bool)
    highest_level_changed = Signal(int)
    session_abandoned = Signal(int, int)

    def __init__(
        self,
        policy: DifficultyPolicy,
        progress_store: ProgressStore,
        generator: Optional[ShapeGenerator] = None,
        timers: Optional[TimerController] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._policy = policy
        self._progress = progress_store
        self._generator = generator or ShapeGenerator(policy.bounds)
        self._timers = timers or TimerController(self)
        self._state = SessionState(
            lives=policy.starting_lives,
            highest_level_reached=max(1, progress_store.highest_level),
        )
        self._memorize_timer: Optional[Countdown] = None
        self._recall_timer: Optional[Countdown] = None
        self._snapshot = TimerSnapshot.NONE
        self._round_pending = False

        self._start_delay = QTimer(self)
        self._start_delay.setSingleShot(True)
        self._start_delay.timeout.connect(self.start_round)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def policy(self) -> DifficultyPolicy:
        return self._policy

    @property
    def snapshot(self) -> TimerSnapshot:
        return self._snapshot

    @property
    def remaining_seconds(self) -> int:
        """Seconds left on the countdown of the current phase."""
        if self._state.is_paused:
            return self._snapshot.remaining_seconds
        handle = self._handle_for_phase()
        return handle.remaining if handle is not None else 0

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self) -> None:
        """Begin a fresh session at level 1 and schedule its first round."""
        self._stop_everything()
        was_paused = self._state.is_paused
        self._state = SessionState(
            lives=self._policy.starting_lives,
            highest_level_reached=max(1, self._progress.highest_level),
        )
        logger.info(
            "Session started (lives=%d, highest level=%d)",
            self._state.lives,
            self._state.highest_level_reached,
        )
        if was_paused:
            self.paused_changed.emit(False)
        self._set_phase(Phase.IDLE)
        self._schedule_round()

    def retry(self) -> bool:
        """Start over after game over, from the level the last life was lost on."""
        if self._state.phase is not Phase.GAME_OVER:
            logger.debug("Ignoring retry in phase %s", self._state.phase.value)
            return False
        self._state.lives = self._policy.starting_lives
        self._set_level(self._state.level_when_last_died)
        logger.info("Retrying from level %d", self._state.level)
        self._set_phase(Phase.IDLE)
        self._schedule_round()
        return True

    def abandon(self) -> None:
        """Leave the session for the menu. No further round is scheduled."""
        self._stop_everything()
        was_paused = self._state.is_paused
        self._state.is_paused = False
        self._state.current_shape = None
        self._state.selections.clear()
        logger.info("Session abandoned at level %d with score %d", self._state.level, self._state.score)
        self.session_abandoned.emit(self._state.score, self._state.level)
        if was_paused:
            self.paused_changed.emit(False)
        self._set_phase(Phase.IDLE)

    # ------------------------------------------------------------------
    # Round flow
    # ------------------------------------------------------------------

    def start_round(self) -> bool:
        state = self._state
        if state.phase is not Phase.IDLE or state.is_paused:
            logger.debug("Ignoring round start in phase %s (paused=%s)", state.phase.value, state.is_paused)
            return False
        self._round_pending = False
        self._start_delay.stop()

        shape = self._generator.generate(self._policy.shape_size(state.level))
        state.current_shape = shape
        state.selections = set()
        self._set_phase(Phase.MEMORIZING)
        logger.info("Round started at level %d with a %d-cell shape", state.level, shape.size)
        self.round_started.emit(state.level)
        self.shape_revealed.emit(shape)
        self.selection_changed.emit(frozenset())

        self._memorize_timer = self._timers.start_countdown(
            TimerKind.MEMORIZE,
            self._policy.memorize_seconds(state.level),
            self._on_memorize_tick,
            self._on_memorize_expired,
        )
        return True

    def toggle_cell(self, cell: Cell) -> bool:
        if not self._state.accepts_selection:
            logger.debug("Ignoring cell toggle in phase %s", self._state.phase.value)
            return False
        cell = Cell(*cell)
        if not self._generator.bounds.contains(cell):
            logger.debug("Ignoring out-of-grid cell %s", cell)
            return False
        selections = self._state.selections
        if cell in selections:
            selections.remove(cell)
        else:
            selections.add(cell)
        self.selection_changed.emit(frozenset(selections))
        return True

    def submit(self) -> Optional[RoundResult]:
        """Submit the current selection. The UI blocks empty manual submissions."""
        if not self._state.accepts_selection:
            logger.debug("Ignoring submit in phase %s", self._state.phase.value)
            return None
        return self._evaluate()

    def acknowledge_feedback(self) -> bool:
        """The player has dismissed the round result; move on to the next round."""
        state = self._state
        if state.phase is not Phase.FEEDBACK or state.is_paused:
            logger.debug("Ignoring feedback acknowledgement in phase %s", state.phase.value)
            return False
        state.current_shape = None
        self._set_phase(Phase.IDLE)
        self._schedule_round()
        return True

    def retry_level(self) -> bool:
        if self._state.feedback_outcome is not Outcome.FAILED:
            logger.debug("Ignoring retry-level without a failed round")
            return False
        return self.acknowledge_feedback()

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------

    def pause(self) -> bool:
        state = self._state
        if state.is_paused or state.phase is Phase.GAME_OVER:
            return False
        self._snapshot = self._timers.snapshot(self._handle_for_phase())
        self._timers.cancel_all()
        self._start_delay.stop()
        state.is_paused = True
        logger.info(
            "Paused in phase %s with %ds remaining",
            state.phase.value,
            self._snapshot.remaining_seconds,
        )
        self.paused_changed.emit(True)
        return True

    def resume(self) -> bool:
        state = self._state
        if not state.is_paused:
            return False
        snapshot, self._snapshot = self._snapshot, TimerSnapshot.NONE
        state.is_paused = False
        logger.info("Resumed in phase %s", state.phase.value)
        self.paused_changed.emit(False)

        if snapshot.is_empty:
            if self._round_pending:
                self._schedule_round()
            return True
        handle = self._timers.resume(snapshot)
        if handle is None:
            # Expiry already ran and replaced the phase's timers.
            return True
        if snapshot.kind is TimerKind.MEMORIZE:
            self._memorize_timer = handle
        else:
            self._recall_timer = handle
        return True

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_memorize_tick(self, remaining: int) -> None:
        self.tick.emit(Phase.MEMORIZING, remaining)

    def _on_memorize_expired(self) -> None:
        state = self._state
        if state.phase is not Phase.MEMORIZING or state.is_paused:
            logger.debug("Dropping memorize expiry in phase %s", state.phase.value)
            return
        self._memorize_timer = None
        self._set_phase(Phase.RECALLING)
        self._recall_timer = self._timers.start_countdown(
            TimerKind.RECALL,
            self._policy.recall_seconds(state.level),
            self._on_recall_tick,
            self._on_recall_expired,
        )

    def _on_recall_tick(self, remaining: int) -> None:
        self.tick.emit(Phase.RECALLING, remaining)

    def _on_recall_expired(self) -> None:
        state = self._state
        if state.phase is not Phase.RECALLING or state.is_paused:
            logger.debug("Dropping recall expiry in phase %s", state.phase.value)
            return
        self._recall_timer = None
        logger.info("Recall time is up; submitting %d selections", len(state.selections))
        self._evaluate()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _evaluate(self) -> RoundResult:
        state = self._state
        self._cancel_timers()
        target = state.current_shape.cells if state.current_shape is not None else frozenset()
        score = score_round(target, state.selections, state.level)
        result = RoundResult(
            level=state.level,
            accuracy=score.accuracy,
            points=score.points,
            outcome=Outcome.PASSED if score.passed else Outcome.FAILED,
            correct=score.correct,
            incorrect=score.incorrect,
            missed=score.missed,
        )
        state.history.append(result)

        if result.passed:
            state.score += result.points
            self._set_level(state.level + 1)
            logger.info("Level %d passed (+%d points, score %d)", result.level, result.points, state.score)
            self._set_phase(Phase.FEEDBACK)
            self.round_passed.emit(result.accuracy, result.points)
            return result

        state.lives = max(0, state.lives - 1)
        logger.info(
            "Level %d failed (accuracy %.2f, %d lives left)",
            result.level,
            result.accuracy,
            state.lives,
        )
        if state.lives > 0:
            self._set_phase(Phase.FEEDBACK)
            self.round_failed.emit(result.accuracy, state.lives)
            return result

        state.level_when_last_died = state.level
        state.current_shape = None
        self._set_phase(Phase.GAME_OVER)
        self.round_failed.emit(result.accuracy, 0)
        logger.info("Game over: score %d at level %d", state.score, state.level)
        self.game_over.emit(state.score, state.level)
        return result

    def _set_level(self, level: int) -> None:
        state = self._state
        state.level = level
        if level > state.highest_level_reached:
            state.highest_level_reached = level
            self._progress.record_level(level)
            self.highest_level_changed.emit(level)

    def _set_phase(self, phase: Phase) -> None:
        if self._state.phase is not phase:
            logger.debug("Phase %s -> %s", self._state.phase.value, phase.value)
        self._state.phase = phase
        self.phase_changed.emit(phase)

    def _schedule_round(self) -> None:
        self._round_pending = True
        if self._state.is_paused:
            return
        delay = self._policy.round_start_delay_ms
        if delay <= 0:
            self.start_round()
        else:
            self._start_delay.start(delay)

    def _handle_for_phase(self) -> Optional[Countdown]:
        if self._state.phase is Phase.MEMORIZING:
            return self._memorize_timer
        if self._state.phase is Phase.RECALLING:
            return self._recall_timer
        return None

    def _cancel_timers(self) -> None:
        self._timers.cancel(self._memorize_timer)
        self._timers.cancel(self._recall_timer)
        self._memorize_timer = None
        self._recall_timer = None

    def _stop_everything(self) -> None:
        self._cancel_timers()
        self._timers.cancel_all()
        self._start_delay.stop()
        self._round_pending = False
        self._snapshot = TimerSnapshot.NONE
