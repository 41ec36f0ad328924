from enum import IntEnum

class SignalAction(IntEnum):
    NONE = 0
    LONG = 1
    SHORT = 2

class PositionSide(IntEnum):
    LONG = 1
    SHORT = 2

    @property
    def entry_side(self) -> "OrderSide":
        return OrderSide.BUY if self is PositionSide.LONG else OrderSide.SELL

    @property
    def exit_side(self) -> "OrderSide":
        return OrderSide.SELL if self is PositionSide.LONG else OrderSide.BUY

    @classmethod
    def from_action(cls, action: SignalAction) -> "PositionSide":
        if action == SignalAction.LONG:
            return cls.LONG
        if action == SignalAction.SHORT:
            return cls.SHORT
        raise ValueError(f"无方向信号不能开仓: {action!r}")

class OrderSide(IntEnum):
    BUY = 0
    SELL = 1

class ExecutionState(IntEnum):
    IDLE = 0
    FLATTENING = 1
    SIZING = 2
    ENTRY_SUBMITTED = 3
    BRACKET_PLACING = 4
    OPEN = 5
    ABORTED = 6

class CycleOutcome(IntEnum):
    OPENED = 0
    NO_SIGNAL = 1
    REJECTED = 2
    ABORTED = 3
    CRITICAL = 4

class NotifyCategory(IntEnum):
    ENTRY = 0
    CLOSE = 1
    ERROR = 2
    CRITICAL = 3
    STARTUP = 4
    REPORT = 5
