from kube_context.api.watch_gate import GenerationGate


def test_untagged_events_always_pass():
    gate = GenerationGate()
    gate.next_generation("Pod")
    assert gate.is_current("Pod", None)


def test_restart_retires_previous_generation():
    gate = GenerationGate()
    first = gate.next_generation("Pod")
    second = gate.next_generation("Pod")
    assert second == first + 1
    assert not gate.is_current("Pod", first)
    assert gate.is_current("Pod", second)


def test_kinds_have_separate_generations():
    gate = GenerationGate()
    gate.next_generation("Pod")
    assert gate.current("Node") == 0
    assert gate.is_current("Node", 0)


def test_advance_all_invalidates_every_open_stream():
    gate = GenerationGate()
    pod = gate.next_generation("Pod")
    node = gate.next_generation("Node")
    gate.advance_all()
    assert not gate.is_current("Pod", pod)
    assert not gate.is_current("Node", node)
    assert gate.next_generation("Pod") == pod + 2
