import pytest

from kube_context.engine.injector import (
    SUMMARY_TOKEN_BUDGET, ContextInjector, compress_resource, estimate_tokens,
)
from kube_context.engine.models import (
    ContextQuery, ReplicaCounts, ResourceSnapshot, ResourceUsage, is_unhealthy,
)
from kube_context.engine.store import ResourceStore


def _pod(name, namespace="default", healthy=True, **kwargs) -> ResourceSnapshot:
    if healthy:
        return ResourceSnapshot(kind="Pod", name=name, namespace=namespace, phase="Running", ready=True, **kwargs)
    return ResourceSnapshot(
        kind="Pod", name=name, namespace=namespace, phase="Running", ready=False,
        warnings=["CrashLoopBackOff"], restart_count=7, **kwargs,
    )


def _deployment(name, namespace="default", unavailable=0) -> ResourceSnapshot:
    return ResourceSnapshot(
        kind="Deployment", name=name, namespace=namespace,
        phase="Degraded" if unavailable else "Available", ready=unavailable == 0,
        replicas=ReplicaCounts(desired=3, ready=3 - unavailable, unavailable=unavailable),
    )


def _node(name, ready=True) -> ResourceSnapshot:
    return ResourceSnapshot(kind="Node", name=name, phase="Ready" if ready else "NotReady", ready=ready)


def _injector(*snapshots, budget=2000):
    store = ResourceStore()
    for s in snapshots:
        store.upsert(s)
    return ContextInjector(store, budget)


class TestCompressResource:
    def test_minimal_line(self):
        line = compress_resource(_pod("web-1", namespace="prod"))
        assert line == "[Pod] web-1 ns=prod phase=Running ready=true"

    def test_cluster_scoped_has_no_namespace(self):
        assert compress_resource(_node("node-a")) == "[Node] node-a phase=Ready ready=true"

    def test_all_optional_fields_in_order(self):
        snap = ResourceSnapshot(
            kind="Deployment", name="api", namespace="prod", phase="Degraded", ready=False,
            restart_count=4,
            replicas=ReplicaCounts(desired=3, ready=1, unavailable=2),
            resource_usage=ResourceUsage(cpu_requests="250m", memory_requests="128Mi"),
            warnings=["2 unavailable replica(s)", "x"],
        )
        assert compress_resource(snap) == (
            "[Deployment] api ns=prod phase=Degraded ready=false restarts=4 "
            "ready=1/3 unavailable=2 cpu-req=250m mem-req=128Mi warn=2 unavailable replica(s),x"
        )

    def test_never_contains_structural_braces(self):
        snap = _pod("p", healthy=False, resource_usage=ResourceUsage(cpu_requests="1"))
        line = compress_resource(snap)
        assert "{" not in line and "}" not in line
        assert "\n" not in line


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


class TestInference:
    @pytest.mark.parametrize("message,expected", [
        ("why are my PODS restarting", ["Pod"]),
        ("check the rollout", ["Deployment"]),
        ("kubelet is down", ["Node"]),
        ("hello there", []),
        ("pods on node x and the deployment", ["Pod", "Deployment", "Node"]),
    ])
    def test_infer_resource_types(self, message, expected):
        assert _injector().infer_resource_types(message) == expected

    @pytest.mark.parametrize("message", ["What is failing?", "show me crashing pods", "anything BROKEN", "node not ready"])
    def test_problem_queries(self, message):
        assert _injector().is_problem_query(message)

    def test_non_problem_query(self):
        assert not _injector().is_problem_query("list my services")


class TestBuildChatContext:
    def test_unhealthy_lines_precede_healthy(self):
        injector = _injector(_pod("ok-1"), _pod("bad-1", healthy=False), _pod("ok-2"), _pod("bad-2", healthy=False))
        lines = injector.build_chat_context("what is failing").split("\n")
        assert [l.split()[1] for l in lines] == ["bad-1", "bad-2", "ok-1", "ok-2"]

    def test_pod_keywords_only_return_pods(self):
        injector = _injector(_pod("p1"), _deployment("d1"), _node("n1"))
        lines = injector.build_chat_context("show me the pods").split("\n")
        assert lines and all(l.startswith("[Pod]") for l in lines)

    def test_no_keywords_returns_everything(self):
        injector = _injector(_pod("p1"), _deployment("d1"), _node("n1"))
        assert len(injector.build_chat_context("hello").split("\n")) == 3

    def test_explicit_resource_types_win_over_inference(self):
        injector = _injector(_pod("p1"), _node("n1"))
        out = injector.build_chat_context("show pods", ContextQuery(resource_types=["Node"]))
        assert out == "[Node] n1 phase=Ready ready=true"

    def test_namespace_filter_excludes_cluster_scoped(self):
        injector = _injector(_pod("a", namespace="ns1"), _pod("b", namespace="ns2"), _node("n1"))
        out = injector.build_chat_context("status", ContextQuery(namespaces=["ns1"]))
        assert out == "[Pod] a ns=ns1 phase=Running ready=true"

    def test_unhealthy_only(self):
        injector = _injector(_pod("ok"), _pod("bad", healthy=False))
        lines = injector.build_chat_context("status", ContextQuery(unhealthy_only=True)).split("\n")
        assert len(lines) == 1 and "bad" in lines[0]

    def test_empty_store_gives_empty_string(self):
        assert _injector().build_chat_context("anything") == ""

    def test_budget_is_enforced(self):
        pods = [_pod(f"pod-{i:03d}", healthy=i % 3 == 0) for i in range(200)]
        injector = _injector(*pods, budget=100)
        out = injector.build_chat_context("pods")
        lines = out.split("\n")
        used = sum(estimate_tokens(l + "\n") for l in lines)
        assert used <= 100
        assert 1 < len(lines) < 200
        flags = [is_unhealthy(p) for p in pods if p.name in {l.split()[1] for l in lines}]
        assert flags == sorted(flags, reverse=True)

    def test_first_line_always_included(self):
        injector = _injector(_pod("a-very-long-pod-name-" + "x" * 80), budget=1)
        out = injector.build_chat_context("pods")
        assert out.startswith("[Pod] a-very-long-pod-name-")
        assert "\n" not in out

    def test_max_tokens_overrides_default(self):
        pods = [_pod(f"p{i}") for i in range(50)]
        injector = _injector(*pods, budget=10_000)
        small = injector.build_chat_context("pods", ContextQuery(max_tokens=30))
        assert len(small.split("\n")) < 50

    def test_set_token_budget_applies_on_next_call(self):
        pods = [_pod(f"p{i}") for i in range(50)]
        injector = _injector(*pods, budget=10_000)
        before = len(injector.build_chat_context("pods").split("\n"))
        injector.set_token_budget(30)
        after = len(injector.build_chat_context("pods").split("\n"))
        assert before == 50
        assert after < before


class TestBuildSummaryContext:
    def test_uses_fixed_budget(self):
        pods = [_pod(f"pod-{i:03d}") for i in range(300)]
        injector = _injector(*pods, budget=1_000_000)
        lines = injector.build_summary_context("Pod").split("\n")
        assert sum(estimate_tokens(l + "\n") for l in lines) <= SUMMARY_TOKEN_BUDGET
        assert len(lines) < 300

    def test_namespace_scoped(self):
        injector = _injector(_pod("a", namespace="ns1"), _pod("b", namespace="ns2"))
        assert injector.build_summary_context("Pod", "ns2") == "[Pod] b ns=ns2 phase=Running ready=true"

    def test_unhealthy_first(self):
        injector = _injector(_deployment("fine"), _deployment("broken", unavailable=2))
        assert injector.build_summary_context("Deployment").split("\n")[0].startswith("[Deployment] broken")
