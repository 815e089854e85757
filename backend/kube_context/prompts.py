"""System prompts for the cluster assistant and assembly of live cluster context."""

from __future__ import annotations

from typing import Optional

from kube_context.chat.models import ResourceContext

KUBECTL_PREFIX = "/kubectl"

CHAT_SYSTEM_PROMPT = """You are a Kubernetes expert assistant integrated into a Kubernetes management application.

STRICT GUIDELINES:
- You MUST ONLY answer questions related to Kubernetes, container orchestration, cloud-native technologies, and related tools (Helm, kubectl, Docker, containerd, CRI-O, etc.)
- If asked about non-Kubernetes topics, politely decline and redirect to Kubernetes-related questions
- Keep responses concise, technical, and actionable
- Use Markdown formatting for better readability
- Provide code examples when relevant (YAML manifests, kubectl commands, etc.)

ALLOWED TOPICS:
- Kubernetes resources (Pods, Deployments, Services, ConfigMaps, Secrets, etc.)
- Cluster management and troubleshooting
- Container technologies, Helm and Kustomize
- Networking, storage, security and RBAC
- Monitoring, observability and autoscaling
- Operators and CRDs"""

LIVE_STATE_HEADER = "--- LIVE CLUSTER STATE ---"
LIVE_STATE_FOOTER = "--- END CLUSTER STATE ---"
NO_CONTEXT_NOTE = "Note: No live cluster context is currently available. Answer based on general Kubernetes knowledge."


def get_chat_system_prompt(context: Optional[ResourceContext] = None) -> str:
    if context is None:
        return CHAT_SYSTEM_PROMPT
    info = f'\n\nCurrent Context:\n- Resource: {context.type} "{context.name}"'
    if context.namespace:
        info += f"\n- Namespace/Container: {context.namespace}"
    return CHAT_SYSTEM_PROMPT + info


def split_kubectl_mode(message: str) -> tuple[bool, str]:
    """Detect a leading ``/kubectl`` and return (is_kubectl, message without the prefix)."""
    stripped = message.lstrip()
    if not stripped.lower().startswith(KUBECTL_PREFIX):
        return False, message
    return True, stripped[len(KUBECTL_PREFIX):].strip()


def build_kubectl_prompt(cluster_name: str, namespace: str) -> str:
    return (
        "\n\n--- KUBECTL MODE ---\n"
        f"Active cluster: {cluster_name}\n"
        f"Active namespace: {namespace}\n"
        "Translate the user's request into kubectl commands for this cluster and namespace.\n"
        "- Always include --namespace/-n explicitly unless the resource is cluster-scoped.\n"
        "- Put each command in its own fenced code block.\n"
        "- For destructive commands (delete, drain, cordon, scale to zero, rollout undo) "
        "warn the user first and explain the impact before showing the command."
    )


def build_enhanced_system_prompt(
    base_prompt: str,
    cluster_context: str,
    kubectl: Optional[tuple[str, str]] = None,
) -> str:
    """Append live cluster state (or a no-context note) and, optionally, kubectl instructions.

    ``kubectl`` is an optional ``(cluster_name, namespace)`` pair.
    """
    prompt = base_prompt or ""
    if cluster_context:
        prompt += (
            f"\n\n{LIVE_STATE_HEADER}\n"
            "The following is a compressed snapshot of the user's current Kubernetes cluster state. "
            "Use this to answer cluster-specific questions.\n"
            f"{cluster_context}\n{LIVE_STATE_FOOTER}"
        )
    else:
        prompt += f"\n\n{NO_CONTEXT_NOTE}"

    if kubectl is not None:
        cluster_name, namespace = kubectl
        prompt += build_kubectl_prompt(cluster_name or "unknown", namespace or "default")
    return prompt
