import pytest

from kube_context.chat.models import ResourceContext
from kube_context.prompts import (
    CHAT_SYSTEM_PROMPT, LIVE_STATE_FOOTER, LIVE_STATE_HEADER, NO_CONTEXT_NOTE,
    build_enhanced_system_prompt, build_kubectl_prompt, get_chat_system_prompt, split_kubectl_mode,
)


class TestChatSystemPrompt:
    def test_without_context(self):
        assert get_chat_system_prompt() == CHAT_SYSTEM_PROMPT

    def test_with_resource_context(self):
        prompt = get_chat_system_prompt(ResourceContext(name="web-1", type="Pod", namespace="prod"))
        assert prompt.startswith(CHAT_SYSTEM_PROMPT)
        assert 'Resource: Pod "web-1"' in prompt
        assert "Namespace/Container: prod" in prompt


class TestKubectlMode:
    @pytest.mark.parametrize("message, expected", [
        ("/kubectl list pods", (True, "list pods")),
        ("  /KUBECTL   scale web to 3", (True, "scale web to 3")),
        ("why is kubectl slow", (False, "why is kubectl slow")),
    ])
    def test_split(self, message, expected):
        assert split_kubectl_mode(message) == expected

    def test_kubectl_prompt(self):
        prompt = build_kubectl_prompt("prod-cluster", "payments")
        assert "KUBECTL MODE" in prompt
        assert "prod-cluster" in prompt
        assert "payments" in prompt
        assert "destructive" in prompt


class TestEnhancedSystemPrompt:
    def test_with_cluster_context(self):
        prompt = build_enhanced_system_prompt("BASE", "[Pod] web-1 ns=prod phase=Running ready=true")
        assert prompt.startswith("BASE")
        header = prompt.index(LIVE_STATE_HEADER)
        body = prompt.index("[Pod] web-1")
        footer = prompt.index(LIVE_STATE_FOOTER)
        assert header < body < footer
        assert NO_CONTEXT_NOTE not in prompt

    def test_without_cluster_context(self):
        prompt = build_enhanced_system_prompt("BASE", "")
        assert prompt == f"BASE\n\n{NO_CONTEXT_NOTE}"

    def test_kubectl_defaults(self):
        prompt = build_enhanced_system_prompt("BASE", "", kubectl=("", ""))
        assert "Active cluster: unknown" in prompt
        assert "Active namespace: default" in prompt

    def test_kubectl_appended_after_context(self):
        prompt = build_enhanced_system_prompt("BASE", "ctx", kubectl=("c1", "ns1"))
        assert prompt.index(LIVE_STATE_FOOTER) < prompt.index("KUBECTL MODE")
