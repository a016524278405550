from enum import Enum


class ControllerState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    ANALYZING = "analyzing"
    SENDING_AND_ANALYZING = "sending_and_analyzing"

    @property
    def is_sending(self) -> bool:
        return self in (ControllerState.SENDING, ControllerState.SENDING_AND_ANALYZING)

    @property
    def is_analyzing(self) -> bool:
        return self in (ControllerState.ANALYZING, ControllerState.SENDING_AND_ANALYZING)


class ControllerEvent(Enum):
    SEND_STARTED = "send_started"
    SEND_FINISHED = "send_finished"
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_FINISHED = "analysis_finished"


class InvalidTransition(RuntimeError):
    def __init__(self, state: ControllerState, event: ControllerEvent):
        self.state = state
        self.event = event
        super().__init__(f"{event.value} is not allowed while {state.value}")


_S = ControllerState
_E = ControllerEvent

TRANSITIONS = {
    (_S.IDLE, _E.SEND_STARTED): _S.SENDING,
    (_S.IDLE, _E.ANALYSIS_STARTED): _S.ANALYZING,
    (_S.SENDING, _E.SEND_FINISHED): _S.IDLE,
    (_S.SENDING, _E.ANALYSIS_STARTED): _S.SENDING_AND_ANALYZING,
    (_S.ANALYZING, _E.ANALYSIS_FINISHED): _S.IDLE,
    (_S.ANALYZING, _E.SEND_STARTED): _S.SENDING_AND_ANALYZING,
    (_S.SENDING_AND_ANALYZING, _E.SEND_FINISHED): _S.ANALYZING,
    (_S.SENDING_AND_ANALYZING, _E.ANALYSIS_FINISHED): _S.SENDING,
}


def transition(state: ControllerState, event: ControllerEvent) -> ControllerState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None
