"""Protocol Mode State Machine: управление режимами pause / emergency.

Режим выводится из трёх флагов:
- paused (ProtocolConfig)
- emergency_mode (ProtocolConfig)
- emergency_processed (StakeRegistry, выставляется однократным drain пула)

Переходы:
- ENTER_EMERGENCY: emergency не должен быть активен, выставляет paused=True
- EXIT_EMERGENCY: emergency должен быть активен, снимает флаг, но оставляет
  paused=True (для recovery нужен отдельный UNPAUSE)
- UNPAUSE: отклоняется при активном emergency и после drain пула
- PAUSE: разрешён всегда
"""

from dataclasses import dataclass
from enum import Enum

from stakeledger.core.errors import (
    AlreadyInEmergencyError,
    EmergencyModeActiveError,
    NotInEmergencyError,
    PoolDrainedError,
)


class ProtocolMode(str, Enum):
    """Режим протокола, выведенный из флагов.

    ACTIVE: штатная работа
    PAUSED: новые stake заблокированы
    EMERGENCY: paused + разрешён emergency drain
    DRAINED: пул выведен, возврат в ACTIVE невозможен
    """
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    EMERGENCY = "EMERGENCY"
    DRAINED = "DRAINED"


class ModeRequest(str, Enum):
    """Requested pause/emergency toggle."""
    PAUSE = "PAUSE"
    UNPAUSE = "UNPAUSE"
    ENTER_EMERGENCY = "ENTER_EMERGENCY"
    EXIT_EMERGENCY = "EXIT_EMERGENCY"


@dataclass(frozen=True)
class ModeTransitionResult:
    """Result of a mode transition."""

    paused: bool
    emergency_mode: bool
    new_mode: ProtocolMode
    previous_mode: ProtocolMode

    # Diagnostics
    transition_occurred: bool
    transition_reason: str
    details: str


def derive_mode(paused: bool, emergency_mode: bool, emergency_processed: bool) -> ProtocolMode:
    """Mode from the raw flags."""
    if emergency_processed:
        return ProtocolMode.DRAINED
    if emergency_mode:
        return ProtocolMode.EMERGENCY
    if paused:
        return ProtocolMode.PAUSED
    return ProtocolMode.ACTIVE


class ProtocolModeMachine:
    """Оценка запросов pause/emergency.

    Без состояния: флаги хранятся в ProtocolConfig и StakeRegistry,
    машина только вычисляет следующие флаги или бросает ошибку.
    """

    def evaluate_transition(
        self,
        paused: bool,
        emergency_mode: bool,
        emergency_processed: bool,
        request: ModeRequest,
    ) -> ModeTransitionResult:
        """Вычисление флагов после запроса.

        Args:
            paused: current paused flag
            emergency_mode: current emergency flag
            emergency_processed: True once the pool has been drained
            request: requested toggle

        Returns:
            ModeTransitionResult with the new flags

        Raises:
            AlreadyInEmergencyError: ENTER_EMERGENCY while emergency is active
            NotInEmergencyError: EXIT_EMERGENCY while emergency is not active
            EmergencyModeActiveError: UNPAUSE while emergency is active
            PoolDrainedError: UNPAUSE after the pool was drained
        """
        previous_mode = derive_mode(paused, emergency_mode, emergency_processed)

        # 1. Emergency toggles
        if request == ModeRequest.ENTER_EMERGENCY:
            if emergency_mode:
                raise AlreadyInEmergencyError("emergency mode is already active")
            return self._create_result(
                paused=True,
                emergency_mode=True,
                emergency_processed=emergency_processed,
                previous_mode=previous_mode,
                transition_reason="enter_emergency",
                details=f"{previous_mode.value} → EMERGENCY, paused forced",
            )

        if request == ModeRequest.EXIT_EMERGENCY:
            if not emergency_mode:
                raise NotInEmergencyError("emergency mode is not active")
            # Stays paused: recovery needs a separate UNPAUSE
            return self._create_result(
                paused=True,
                emergency_mode=False,
                emergency_processed=emergency_processed,
                previous_mode=previous_mode,
                transition_reason="exit_emergency",
                details="Emergency cleared, protocol stays paused",
            )

        # 2. Pause toggles
        if request == ModeRequest.UNPAUSE:
            if emergency_mode:
                raise EmergencyModeActiveError("cannot unpause while emergency mode is active")
            if emergency_processed:
                raise PoolDrainedError("cannot unpause after the pool was drained")
            return self._create_result(
                paused=False,
                emergency_mode=False,
                emergency_processed=emergency_processed,
                previous_mode=previous_mode,
                transition_reason="unpause",
                details=f"{previous_mode.value} → ACTIVE",
            )

        return self._create_result(
            paused=True,
            emergency_mode=emergency_mode,
            emergency_processed=emergency_processed,
            previous_mode=previous_mode,
            transition_reason="pause",
            details=f"{previous_mode.value} → paused",
        )

    def _create_result(
        self,
        paused: bool,
        emergency_mode: bool,
        emergency_processed: bool,
        previous_mode: ProtocolMode,
        transition_reason: str,
        details: str,
    ) -> ModeTransitionResult:
        """Build the transition result."""
        new_mode = derive_mode(paused, emergency_mode, emergency_processed)
        return ModeTransitionResult(
            paused=paused,
            emergency_mode=emergency_mode,
            new_mode=new_mode,
            previous_mode=previous_mode,
            transition_occurred=new_mode != previous_mode,
            transition_reason=transition_reason,
            details=details,
        )
