import pytest

from cr_controller.models.state import OrchestrationPhase, PhaseStateMachine


pytestmark = pytest.mark.unit_controller


def test_full_bootstrap_sequence():
    sm = PhaseStateMachine()
    assert sm.phase == OrchestrationPhase.IDLE

    for phase in (
        OrchestrationPhase.CREATING,
        OrchestrationPhase.UPLOADING,
        OrchestrationPhase.SETTING_UP,
        OrchestrationPhase.RUNNING,
        OrchestrationPhase.WAITING,
        OrchestrationPhase.DESTROYING,
        OrchestrationPhase.FINISHED,
    ):
        sm.transition(phase)

    assert sm.is_terminal()
    assert sm.history[0] == OrchestrationPhase.IDLE
    assert sm.history[-1] == OrchestrationPhase.FINISHED


def test_skipped_phases_are_allowed():
    sm = PhaseStateMachine()
    sm.transition(OrchestrationPhase.UPLOADING)
    sm.transition(OrchestrationPhase.WAITING)
    sm.transition(OrchestrationPhase.FINISHED)
    assert sm.history == [
        OrchestrationPhase.IDLE,
        OrchestrationPhase.UPLOADING,
        OrchestrationPhase.WAITING,
        OrchestrationPhase.FINISHED,
    ]


def test_bootstrap_order_cannot_go_backwards():
    sm = PhaseStateMachine()
    sm.transition(OrchestrationPhase.SETTING_UP)
    with pytest.raises(ValueError):
        sm.transition(OrchestrationPhase.CREATING)


def test_failed_reachable_from_any_active_phase_but_not_after_terminal():
    sm = PhaseStateMachine()
    sm.transition(OrchestrationPhase.RUNNING)
    sm.transition(OrchestrationPhase.FAILED, reason="boom")
    assert sm.reason == "boom"
    assert sm.is_terminal()
    with pytest.raises(ValueError):
        sm.transition(OrchestrationPhase.FAILED)


def test_callbacks_see_every_transition():
    seen = []
    sm = PhaseStateMachine()
    sm.register_callback(lambda phase, reason: seen.append((phase, reason)))
    sm.transition(OrchestrationPhase.CREATING, reason="create requested")
    sm.transition(OrchestrationPhase.FINISHED)
    assert seen == [
        (OrchestrationPhase.CREATING, "create requested"),
        (OrchestrationPhase.FINISHED, None),
    ]
