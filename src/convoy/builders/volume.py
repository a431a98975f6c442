"""Translation of volume parameters into an engine creation request."""

from convoy.clients.engine import VolumeCreateRequest
from convoy.models.volume import VolumeParameters


DEFAULT_VOLUME_DRIVER = "local"


def build_volume_request(params: VolumeParameters, default_name: str) -> VolumeCreateRequest:
    return VolumeCreateRequest(
        name=params.name or default_name,
        driver=params.driver or DEFAULT_VOLUME_DRIVER,
        driver_opts=dict(params.driver_opts),
        labels=dict(params.labels),
    )
