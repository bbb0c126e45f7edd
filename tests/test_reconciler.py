"""
Tests for the reconciliation pass
"""

import json
import threading

from hpa_scaler.core.annotations import (
    ANNOTATION_HPA_SCALER,
    ANNOTATION_PROMETHEUS_QUERY,
    ANNOTATION_PROMETHEUS_SERVER_URL,
    ANNOTATION_SCALE_DOWN_MAX_RATIO,
    ANNOTATION_ENABLE_DEPLOYMENT_CHECKING,
    ANNOTATION_STATE,
)
from hpa_scaler.core.errors import ClusterListError, ClusterWriteError
from hpa_scaler.models.results import STATUS_FAILED, STATUS_SKIPPED, STATUS_SUCCEEDED

from conftest import make_hpa, make_replica_set, scaler_annotations

QUERY = "sum(rate(nginx_http_requests_total[5m]))"


def processed(metrics, status, namespace="default", initiator="poller"):
    return metrics.registry.get_sample_value(
        "estafette_hpa_scaler_totals_total",
        {"namespace": namespace, "status": status, "initiator": initiator}
    )


class TestProcessAutoscaler:

    def test_disabled_is_skipped(self, reconciler, cluster, prometheus):
        hpa = make_hpa(annotations={ANNOTATION_HPA_SCALER: "false", ANNOTATION_PROMETHEUS_QUERY: QUERY})

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SKIPPED
        assert cluster.updated == []
        assert prometheus.query_count == 0

    def test_without_annotations_is_skipped(self, reconciler, cluster):
        result = reconciler.process_autoscaler(make_hpa(annotations=None), reconciler.new_context("poller"))

        assert result.status == STATUS_SKIPPED
        assert cluster.updated == []

    def test_changed_min_replicas_is_written(self, reconciler, cluster):
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=3, max_replicas=100)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SUCCEEDED
        assert result.decision.target_min_replicas == 5
        assert cluster.updated == [hpa]
        assert hpa.spec.min_replicas == 5
        assert hpa.spec.max_replicas == 100

        state = json.loads(hpa.metadata.annotations[ANNOTATION_STATE])
        assert state["enabled"] is True
        assert state["prometheusQuery"] == QUERY
        assert state["requestsPerReplica"] == 10
        assert state["lastUpdated"]

    def test_unchanged_min_replicas_is_skipped(self, reconciler, cluster):
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=5)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SKIPPED
        assert result.decision.changed is False
        assert cluster.updated == []
        assert ANNOTATION_STATE not in hpa.metadata.annotations

    def test_second_pass_is_idempotent(self, reconciler, cluster):
        cluster.hpas = [make_hpa(annotations=scaler_annotations(), min_replicas=3)]

        first = reconciler.run_pass()
        second = reconciler.run_pass()

        assert first.resources[0].status == STATUS_SUCCEEDED
        assert second.resources[0].status == STATUS_SKIPPED
        assert len(cluster.updated) == 1

    def test_max_replicas_raised_on_write(self, reconciler, cluster, prometheus):
        prometheus.default = 120.0
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=3, max_replicas=8)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SUCCEEDED
        assert hpa.spec.min_replicas == 12
        assert hpa.spec.max_replicas == 13

    def test_lower_bound_is_respected(self, reconciler, cluster, prometheus):
        prometheus.default = 0.0
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=1, current_replicas=1)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SUCCEEDED
        assert hpa.spec.min_replicas == 3

    def test_unset_min_replicas_defaults_to_one(self, reconciler, cluster, prometheus):
        prometheus.default = 0.0
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=None, current_replicas=1)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.decision.current_min_replicas == 1
        assert result.status == STATUS_SUCCEEDED

    def test_query_failure_fails_resource(self, reconciler, cluster, prometheus):
        prometheus.failing_queries.add(QUERY)
        hpa = make_hpa(annotations=scaler_annotations())

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_FAILED
        assert "prometheus" in result.error
        assert cluster.updated == []

    def test_query_uses_server_url_override(self, reconciler, prometheus):
        calls = []
        prometheus.get_request_rate = lambda query, server_url: calls.append(server_url) or 10.0
        hpa = make_hpa(annotations=scaler_annotations(**{ANNOTATION_PROMETHEUS_SERVER_URL: "http://other:9090"}))

        reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert calls == ["http://other:9090"]

    def test_write_failure_fails_resource(self, reconciler, cluster):
        cluster.update_errors["web"] = ClusterWriteError("Could not update hpa web in namespace default: conflict")
        hpa = make_hpa(annotations=scaler_annotations())

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_FAILED
        assert "conflict" in result.error

    def test_unexpected_error_fails_resource(self, reconciler, prometheus):
        def explode(query, server_url):
            raise RuntimeError("boom")
        prometheus.get_request_rate = explode

        result = reconciler.process_autoscaler(make_hpa(annotations=scaler_annotations()), reconciler.new_context("poller"))

        assert result.status == STATUS_FAILED
        assert result.error == "boom"

    def test_dry_run_does_not_write(self, reconciler, cluster, settings):
        settings.scaler.dry_run = True
        hpa = make_hpa(annotations=scaler_annotations(), min_replicas=3)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.status == STATUS_SKIPPED
        assert result.decision.target_min_replicas == 5
        assert cluster.updated == []
        assert hpa.spec.min_replicas == 3

    def test_gauges_are_set(self, reconciler, metrics):
        hpa = make_hpa(annotations=scaler_annotations(), current_replicas=7)

        reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        labels = {"hpa": "web", "namespace": "default"}
        assert metrics.registry.get_sample_value("estafette_hpa_scaler_min_replicas", labels) == 5
        assert metrics.registry.get_sample_value("estafette_hpa_scaler_actual_replicas", labels) == 7
        assert metrics.registry.get_sample_value("estafette_hpa_scaler_request_rate", labels) == 50


class TestDeploymentChecking:

    def annotations(self, checking="true"):
        return scaler_annotations(**{
            ANNOTATION_SCALE_DOWN_MAX_RATIO: "0.1",
            ANNOTATION_ENABLE_DEPLOYMENT_CHECKING: checking,
        })

    def test_ratio_floor_suspended_during_rollout(self, reconciler, cluster):
        cluster.replica_sets = [make_replica_set("web", 6), make_replica_set("web", 4)]
        hpa = make_hpa(annotations=self.annotations(), current_replicas=10)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.decision.deployment_in_progress is True
        assert result.decision.target_min_replicas == 5

    def test_ratio_floor_applies_without_rollout(self, reconciler, cluster):
        cluster.replica_sets = [make_replica_set("web", 10), make_replica_set("web", 0)]
        hpa = make_hpa(annotations=self.annotations(), current_replicas=10)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert result.decision.deployment_in_progress is False
        assert result.decision.target_min_replicas == 9

    def test_replica_sets_not_listed_when_disabled(self, reconciler, cluster):
        cluster.replica_sets = [make_replica_set("web", 6), make_replica_set("web", 4)]
        hpa = make_hpa(annotations=self.annotations(checking="false"), current_replicas=10)

        result = reconciler.process_autoscaler(hpa, reconciler.new_context("poller"))

        assert cluster.replica_set_calls == 0
        assert result.decision.target_min_replicas == 9

    def test_replica_sets_listed_once_per_pass(self, reconciler, cluster):
        cluster.hpas = [
            make_hpa(name="web", annotations=self.annotations()),
            make_hpa(name="api", annotations=self.annotations()),
            make_hpa(name="worker", annotations=self.annotations()),
        ]

        reconciler.run_pass()
        assert cluster.replica_set_calls == 1

        reconciler.run_pass()
        assert cluster.replica_set_calls == 2

    def test_list_failure_skips_check(self, reconciler, cluster):
        cluster.replica_set_error = ClusterListError("Could not list the replicasets in the cluster")
        cluster.hpas = [
            make_hpa(name="web", annotations=self.annotations(), current_replicas=10),
            make_hpa(name="api", annotations=self.annotations(), current_replicas=10),
        ]

        result = reconciler.run_pass()

        assert cluster.replica_set_calls == 1
        assert [r.status for r in result.resources] == [STATUS_SUCCEEDED, STATUS_SUCCEEDED]
        assert all(r.decision.target_min_replicas == 9 for r in result.resources)

    def test_unexpected_list_failure_is_handled_the_same_for_every_resource(self, reconciler, cluster):
        cluster.replica_set_error = ValueError("Invalid value for `conditions`")
        cluster.hpas = [
            make_hpa(name="web", annotations=self.annotations(), current_replicas=10),
            make_hpa(name="api", annotations=self.annotations(), current_replicas=10),
        ]

        result = reconciler.run_pass()

        assert cluster.replica_set_calls == 1
        assert [r.status for r in result.resources] == [STATUS_SUCCEEDED, STATUS_SUCCEEDED]
        assert all(r.decision.deployment_in_progress is False for r in result.resources)


class TestRunPass:

    def test_failure_does_not_block_siblings(self, reconciler, cluster, prometheus, metrics):
        prometheus.failing_queries.add("broken")
        cluster.hpas = [
            make_hpa(name="first", annotations=scaler_annotations()),
            make_hpa(name="broken", annotations=scaler_annotations(**{ANNOTATION_PROMETHEUS_QUERY: "broken"})),
            make_hpa(name="last", annotations=scaler_annotations()),
        ]

        result = reconciler.run_pass()

        assert [r.name for r in result.resources] == ["first", "broken", "last"]
        assert [r.status for r in result.resources] == [STATUS_SUCCEEDED, STATUS_FAILED, STATUS_SUCCEEDED]
        assert result.status_counts() == {STATUS_SUCCEEDED: 2, STATUS_FAILED: 1}
        assert processed(metrics, STATUS_SUCCEEDED) == 2
        assert processed(metrics, STATUS_FAILED) == 1

    def test_list_failure_skips_pass(self, reconciler, cluster):
        cluster.list_error = ClusterListError("Could not list the horizontal pod autoscalers in the cluster")

        result = reconciler.run_pass()

        assert result.error
        assert result.resources == []
        assert reconciler.last_pass is result

    def test_initiator_label(self, reconciler, cluster, metrics):
        cluster.hpas = [make_hpa(annotations={ANNOTATION_HPA_SCALER: "false"})]

        result = reconciler.run_pass("api")

        assert result.initiator == "api"
        assert processed(metrics, STATUS_SKIPPED, initiator="api") == 1
        assert result.finished_at >= result.started_at

    def test_autoscaler_without_metadata_does_not_stop_pass(self, reconciler, cluster):
        broken = make_hpa(name="broken", annotations=scaler_annotations())
        broken.metadata = None
        cluster.hpas = [broken, make_hpa(name="last", annotations=scaler_annotations())]

        result = reconciler.run_pass()

        assert [r.status for r in result.resources] == [STATUS_FAILED, STATUS_SUCCEEDED]
        assert result.resources[0].name == ""
        assert result.resources[1].name == "last"


class TestWaitIdle:

    def test_returns_immediately_without_pass(self, reconciler):
        reconciler.wait_idle()

    def test_waits_for_running_pass(self, reconciler, cluster, prometheus):
        started = threading.Event()
        release = threading.Event()

        def slow_rate(query, server_url):
            started.set()
            release.wait(5)
            return 50.0
        prometheus.get_request_rate = slow_rate
        cluster.hpas = [make_hpa(annotations=scaler_annotations())]

        api_pass = threading.Thread(target=reconciler.run_pass, args=("api",))
        api_pass.start()
        assert started.wait(5)

        waiter = threading.Thread(target=reconciler.wait_idle)
        waiter.start()
        waiter.join(0.2)
        assert waiter.is_alive()
        assert reconciler.last_pass is None

        release.set()
        waiter.join(5)
        api_pass.join(5)

        assert not waiter.is_alive()
        assert reconciler.last_pass.initiator == "api"
        assert reconciler.last_pass.status_counts() == {STATUS_SUCCEEDED: 1}
