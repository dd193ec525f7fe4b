from __future__ import annotations

from statemachine import State, StateMachine


class CoalescenceFSM(StateMachine):
    """Coalescence eligibility of the most recently added undo entry.

    - barriered: the next command always executes on its own.
    - eligible: the top undo entry may absorb the next command.

    Both events are legal from either state so callers never have to check before sending.
    """

    barriered = State("barriered", value="barriered", initial=True)
    eligible = State("eligible", value="eligible")

    arm = barriered.to(eligible) | eligible.to(eligible)
    barrier = eligible.to(barriered) | barriered.to(barriered)

    @property
    def is_eligible(self) -> bool:
        return str(self.current_state.value) == "eligible"
