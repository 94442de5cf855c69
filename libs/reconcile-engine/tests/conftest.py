"""Pytest configuration and fixtures for reconcile engine tests."""

from typing import ClassVar, Optional

import pytest
from pydantic import Field

from securesign_engine import CamelModel, Resource, ResourceStatus


class SampleSpec(CamelModel):
    image: str = "server:1"
    tree_id: Optional[int] = None


class SampleStatus(ResourceStatus):
    url: Optional[str] = None


class Sample(Resource):
    """Minimal kind used to exercise the engine."""

    group: ClassVar[str] = "example.com"
    version: ClassVar[str] = "v1"
    kind_name: ClassVar[str] = "Sample"
    plural: ClassVar[str] = "samples"

    spec: SampleSpec = Field(default_factory=SampleSpec)
    status: SampleStatus = Field(default_factory=SampleStatus)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample():
    """A freshly created resource."""
    return Sample.from_body(
        {
            "apiVersion": "example.com/v1",
            "kind": "Sample",
            "metadata": {"name": "sample", "namespace": "ns", "uid": "u-1", "generation": 1},
            "spec": {"image": "server:2"},
        }
    )


@pytest.fixture
def clock():
    return FakeClock()
