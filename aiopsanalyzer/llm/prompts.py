"""Prompt templates for the remediation decision.

SYSTEM_PROMPT fixes the reasoning service's role and hard constraints;
USER_PROMPT_TEMPLATE carries the workload facts, the evidence report and the
literal output contract the response parser enforces. Both are constant for
the life of the process: caller-supplied text only ever fills the fact and
evidence slots and cannot alter the instructed schema.
"""

from __future__ import annotations

from datetime import datetime

from aiopsanalyzer.models.evidence import EvidenceReport
from aiopsanalyzer.models.target import Target

PATCH_FILE_TIME_FORMAT = "%Y%m%d-%H%M%S"

SYSTEM_PROMPT: str = """\
You are a senior SRE with ten years of Kubernetes production experience,
operating a cluster managed strictly through ArgoCD + Kustomize + GitOps.
You are running a fully automated AIOps self-healing loop. You may only change
resources by producing an RFC6902 JSON Patch together with a target selector.

STRICT REQUIREMENTS (any violation fails the remediation):
1. Use RFC6902 JSON Patch operations only (op is one of replace, add, remove).
2. Address resources with target.kind + target.labelSelector. Never hardcode
   metadata.name.
3. Only Deployment, StatefulSet and HorizontalPodAutoscaler may be modified.
4. When scaling up, raise requests and limits together to avoid CPU throttling.
5. All values must be sane production values (replicas <= 100, CPU <= 8,
   memory <= 16Gi).
6. patch_file must use the current timestamp plus a short English description,
   exactly in the form YYYYMMDD-HHMMSS-short-desc.yaml.
7. risk_level must be exactly one of: low, medium, high.
8. Output must be a single valid JSON object. No explanations, no markdown,
   no text outside the JSON.\
"""

USER_PROMPT_TEMPLATE: str = """\
### Current application information (use as-is):
- Label selector: {selector}
- Namespace: {namespace}
- Current replicas: {replicas}
- Current CPU limits: {cpu_limits}
- Current CPU requests: {cpu_requests}
- Current memory limits: {memory_limits}
- Current time: {current_time}

### Alerts / monitoring data:
{evidence}

Decide now whether self-healing is required. If it is, output exactly this JSON
shape (and nothing else):

{{
  "action": "heal",
  "namespace": "{namespace}",
  "reason": "one-sentence cause, used as the git commit message (<= 50 chars)",
  "detail": "technical explanation of the problem and the fix, used as the PR body (<= 300 chars)",
  "patch_file": "{current_time}-cpu-spike.yaml",
  "patch_content": [
    {{
      "op": "replace",
      "path": "/spec/replicas",
      "value": 3
    }}
  ],
  "target": {{
    "kind": "Deployment",
    "labelSelector": "{selector}"
  }},
  "suggested_duration": "30m",
  "risk_level": "low" | "medium" | "high"
}}

If no self-healing is required, output:
{{
  "action": "noop",
  "reason": "metrics are nominal, no intervention needed"
}}\
"""

_UNKNOWN = "unknown"


def build_prompt(target: Target, report: EvidenceReport, now: datetime) -> str:
    """Render the user prompt for *target* and *report* at time *now*.

    Pure: identical inputs always produce identical text.
    """
    baseline = target.baseline
    return USER_PROMPT_TEMPLATE.format(
        selector=target.selector(),
        namespace=target.namespace,
        replicas=baseline.replicas if baseline.replicas is not None else _UNKNOWN,
        cpu_limits=baseline.cpu_limits or _UNKNOWN,
        cpu_requests=baseline.cpu_requests or _UNKNOWN,
        memory_limits=baseline.memory_limits or _UNKNOWN,
        current_time=now.strftime(PATCH_FILE_TIME_FORMAT),
        evidence=report.render(),
    )
