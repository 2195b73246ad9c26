"""Unit tests for the pod snapshot filter."""

from __future__ import annotations

import copy

import pytest
import yaml

from aiopsanalyzer.collector.pod_filter import RECORD_DELIMITER, filter_pod, render_pods


def _raw_pod(**overrides) -> dict:
    pod = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": "order-service-7b4f8c6d-x2kj",
            "namespace": "product-a",
            "labels": {"app": "order-service", "pod-template-hash": "7b4f8c6d"},
            "annotations": {"kubectl.kubernetes.io/restartedAt": "2024-01-15T10:00:00Z"},
            "uid": "0d3c5c4e-6b0e-4a8f-9f6a-1a2b3c4d5e6f",
            "resourceVersion": "123456",
            "generation": 3,
            "creationTimestamp": "2024-01-15T09:00:00Z",
            "ownerReferences": [{"kind": "ReplicaSet", "name": "order-service-7b4f8c6d"}],
            "finalizers": ["example.com/cleanup"],
            "managedFields": [{"manager": "kube-controller-manager"}],
        },
        "spec": {"containers": [{"name": "app", "image": "order-service:1.2.3"}]},
        "status": {
            "phase": "Running",
            "conditions": [
                {"type": "Initialized", "status": "True", "lastTransitionTime": "2024-01-15T09:00:01Z"},
                {"type": "ContainersReady", "status": "True"},
                {"type": "PodScheduled", "status": "False"},
            ],
            "containerStatuses": [
                {
                    "name": "app",
                    "ready": True,
                    "restartCount": 4,
                    "containerID": "containerd://abc",
                    "state": {
                        "running": {"startedAt": "2024-01-15T09:00:05Z"},
                        "waiting": None,
                        "terminated": None,
                    },
                },
                {"name": "sidecar", "ready": False, "state": {"waiting": {"reason": "CrashLoopBackOff"}}},
            ],
        },
    }
    pod.update(overrides)
    return pod


class TestFilterPod:
    def test_projection_keeps_only_identity_fields(self) -> None:
        manifest = filter_pod(_raw_pod()).to_manifest()
        assert manifest["apiVersion"] == "v1"
        assert manifest["kind"] == "Pod"
        assert manifest["metadata"] == {
            "name": "order-service-7b4f8c6d-x2kj",
            "namespace": "product-a",
            "labels": {"app": "order-service", "pod-template-hash": "7b4f8c6d"},
        }
        assert "spec" not in manifest

    def test_volatile_bookkeeping_never_survives(self) -> None:
        text = render_pods([filter_pod(_raw_pod())])
        for volatile in (
            "resourceVersion",
            "generation",
            "uid",
            "ownerReferences",
            "finalizers",
            "managedFields",
            "creationTimestamp",
            "startedAt",
            "restartCount",
        ):
            assert volatile not in text

    def test_ready_condition_carries_last_condition_status(self) -> None:
        pod = filter_pod(_raw_pod())
        assert pod.condition is not None
        assert pod.condition.type == "Ready"
        assert pod.condition.status == "False"

    def test_first_container_is_representative(self) -> None:
        pod = filter_pod(_raw_pod())
        assert pod.container is not None
        assert pod.container.name == "app"
        assert pod.container.ready is True
        assert pod.container.state == {"running": {}}

    def test_pod_without_conditions_or_statuses(self) -> None:
        raw = _raw_pod(status={"phase": "Pending"})
        pod = filter_pod(raw)
        assert pod.phase == "Pending"
        assert pod.condition is None
        assert pod.container is None
        status = pod.to_manifest()["status"]
        assert status == {"phase": "Pending"}

    def test_filter_is_total_on_garbage(self) -> None:
        for raw in (None, 42, "pod", [], {}, {"metadata": None, "status": None}):
            pod = filter_pod(raw)
            assert pod.name == ""
            assert pod.labels == {}

    @pytest.mark.parametrize(
        "raw",
        [
            {"metadata": "x"},
            {"metadata": {"labels": ["a"]}},
            {"status": "Running"},
            {"status": {"conditions": [None]}},
            {"status": {"conditions": "Ready"}},
            {"status": {"containerStatuses": ["c"]}},
            {"status": {"containerStatuses": [{"name": "app", "state": "running"}]}},
        ],
    )
    def test_filter_is_total_on_nested_garbage(self, raw: dict) -> None:
        pod = filter_pod(raw)
        assert pod.labels == {}
        render_pods([pod])

    def test_filter_does_not_mutate_input(self) -> None:
        raw = _raw_pod()
        before = copy.deepcopy(raw)
        filter_pod(raw)
        assert raw == before

    def test_two_snapshots_differing_only_in_volatile_fields_render_identically(self) -> None:
        a = _raw_pod()
        b = copy.deepcopy(a)
        b["metadata"]["resourceVersion"] = "999999"
        b["metadata"]["generation"] = 42
        b["metadata"]["uid"] = "ffffffff-0000-0000-0000-000000000000"
        b["status"]["containerStatuses"][0]["state"]["running"]["startedAt"] = "2030-01-01T00:00:00Z"
        assert render_pods([filter_pod(a)]) == render_pods([filter_pod(b)])


class TestRenderPods:
    def test_each_document_followed_by_delimiter(self) -> None:
        pods = [filter_pod(_raw_pod()), filter_pod(_raw_pod())]
        text = render_pods(pods)
        assert text.count(RECORD_DELIMITER) == 2
        assert text.endswith(RECORD_DELIMITER)

    def test_rendered_documents_are_valid_yaml(self) -> None:
        text = render_pods([filter_pod(_raw_pod())])
        docs = [d for d in yaml.safe_load_all(text) if d is not None]
        assert len(docs) == 1
        assert docs[0]["metadata"]["name"] == "order-service-7b4f8c6d-x2kj"
        assert docs[0]["status"]["conditions"] == [{"type": "Ready", "status": "False"}]

    def test_no_pods_renders_empty(self) -> None:
        assert render_pods([]) == ""
