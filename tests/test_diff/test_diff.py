"""Tests for convergence checks."""

from convoy.builders.container import build_container_request
from convoy.diff import container_up_to_date, network_up_to_date, parse_env, volume_up_to_date
from convoy.models.container import ContainerParameters
from convoy.models.network import NetworkParameters
from convoy.models.volume import VolumeParameters


def inspect_payload(image="nginx:1.25", env=None, labels=None, host_config=None, state=None):
    return {
        "Id": "abc",
        "Config": {"Image": image, "Env": env or [], "Labels": labels or {}},
        "HostConfig": host_config or {},
        "State": state or {"Status": "running", "Running": True},
    }


class TestParseEnv:
    """Test NAME=value splitting."""

    def test_split_on_first_equals(self):
        assert parse_env(["A=1", "B=x=y", "C"]) == {"A": "1", "B": "x=y", "C": ""}

    def test_none(self):
        assert parse_env(None) == {}


class TestContainerDiff:
    """Test container convergence."""

    def test_matching_container(self):
        params = ContainerParameters(image="nginx:1.25")

        assert container_up_to_date(params, inspect_payload()).up_to_date

    def test_built_request_converges(self):
        """Test that a container created from a request is up to date."""
        params = ContainerParameters.model_validate({
            "image": "redis:7",
            "env": [{"name": "MODE", "value": "cache"}],
            "labels": {"app": "redis"},
            "restartPolicy": "on-failure",
            "maximumRetryCount": 5,
            "privileged": False,
        })
        request = build_container_request(params)
        observed = {"Config": request.config, "HostConfig": request.host_config, "State": {}}

        assert container_up_to_date(params, observed).up_to_date

    def test_image_mismatch(self):
        params = ContainerParameters(image="nginx:1.26")

        result = container_up_to_date(params, inspect_payload())

        assert not result.up_to_date
        assert result.reasons == ["image is 'nginx:1.25', want 'nginx:1.26'"]

    def test_env_superset_is_up_to_date(self):
        """Test that extra engine-injected variables are ignored."""
        params = ContainerParameters.model_validate({"image": "nginx:1.25", "env": [{"name": "A", "value": "1"}]})

        result = container_up_to_date(params, inspect_payload(env=["PATH=/usr/bin", "A=1"]))

        assert result.up_to_date

    def test_env_value_changed(self):
        params = ContainerParameters.model_validate({"image": "nginx:1.25", "env": [{"name": "A", "value": "2"}]})

        result = container_up_to_date(params, inspect_payload(env=["A=1"]))

        assert not result.up_to_date
        assert "environment variable A" in result.reasons[0]

    def test_sourced_env_not_compared(self):
        params = ContainerParameters.model_validate({
            "image": "nginx:1.25",
            "env": [{"name": "P", "valueFrom": {"secretKeyRef": {"name": "s", "key": "k"}}}],
        })

        assert container_up_to_date(params, inspect_payload()).up_to_date

    def test_missing_label(self):
        params = ContainerParameters(image="nginx:1.25", labels={"app": "web"})

        result = container_up_to_date(params, inspect_payload(labels={"other": "x"}))

        assert not result.up_to_date
        assert result.reasons == ["label app is missing"]

    def test_restart_policy_mismatch(self):
        params = ContainerParameters(image="nginx:1.25", restart_policy="always")

        result = container_up_to_date(params, inspect_payload(host_config={"RestartPolicy": {"Name": "no"}}))

        assert not result.up_to_date

    def test_privileged_mismatch(self):
        params = ContainerParameters(image="nginx:1.25", privileged=True)

        assert not container_up_to_date(params, inspect_payload()).up_to_date

    def test_unhealthy_container(self):
        params = ContainerParameters(image="nginx:1.25")
        state = {"Status": "running", "Running": True, "Health": {"Status": "unhealthy"}}

        result = container_up_to_date(params, inspect_payload(state=state))

        assert result.reasons == ["container is unhealthy"]


class TestVolumeNetworkDiff:
    """Test volume and network convergence."""

    def test_volume_default_driver(self):
        assert volume_up_to_date(VolumeParameters(), {"Driver": "local"}).up_to_date

    def test_volume_driver_mismatch(self):
        assert not volume_up_to_date(VolumeParameters(driver="nfs"), {"Driver": "local"}).up_to_date

    def test_volume_label_superset(self):
        params = VolumeParameters(labels={"a": "1"})

        assert volume_up_to_date(params, {"Driver": "local", "Labels": {"a": "1", "b": "2"}}).up_to_date

    def test_network_label_missing(self):
        params = NetworkParameters(labels={"a": "1"})

        result = network_up_to_date(params, {"Driver": "bridge", "Labels": None})

        assert not result.up_to_date
