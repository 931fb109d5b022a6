"""GATE 0: Protocol Status (pause / emergency / drained)

- Первый gate в цепочке допуска нового stake
- Блокирует stake, если режим протокола не ACTIVE:
  * EMERGENCY: активен emergency mode
  * DRAINED: пул уже выведен через emergency withdrawal
  * PAUSED: протокол поставлен на паузу governance

Режим не хранится, а выводится из флагов (derive_mode).
"""

from dataclasses import dataclass

from stakeledger.emergency.state_machine import ProtocolMode, derive_mode


@dataclass(frozen=True)
class Gate00Result:
    """Результат GATE 0."""

    entry_allowed: bool
    block_reason: str

    mode: ProtocolMode

    details: str


class Gate00ProtocolStatus:
    """GATE 0: Protocol Status.

    Порядок проверок:
    1. DRAINED → блокировка
    2. EMERGENCY → блокировка
    3. PAUSED → блокировка
    """

    def evaluate(
        self,
        paused: bool,
        emergency_mode: bool,
        emergency_processed: bool,
    ) -> Gate00Result:
        """Оценка GATE 0.

        Args:
            paused: ProtocolConfig.paused
            emergency_mode: ProtocolConfig.emergency_mode
            emergency_processed: StakeRegistry.emergency_processed

        Returns:
            Gate00Result с решением о допуске
        """
        mode = derive_mode(paused, emergency_mode, emergency_processed)

        if mode == ProtocolMode.DRAINED:
            return Gate00Result(
                entry_allowed=False,
                block_reason="pool_drained",
                mode=mode,
                details="Pool was drained by emergency withdrawal",
            )

        if mode == ProtocolMode.EMERGENCY:
            return Gate00Result(
                entry_allowed=False,
                block_reason="emergency_mode_active",
                mode=mode,
                details="Emergency mode: new stake blocked",
            )

        if mode == ProtocolMode.PAUSED:
            return Gate00Result(
                entry_allowed=False,
                block_reason="protocol_paused",
                mode=mode,
                details="Protocol paused: new stake blocked",
            )

        return Gate00Result(
            entry_allowed=True,
            block_reason="",
            mode=mode,
            details="Protocol active",
        )
