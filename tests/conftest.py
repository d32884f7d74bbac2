"""
Pytest configuration and fixtures.
"""

from unittest.mock import MagicMock, patch

import pytest

from ebs_csi_cloud.cloud.cloud import EC2Cloud
from ebs_csi_cloud.cloud.context import RequestContext
from ebs_csi_cloud.cloud.fake import FakeCloudProvider
from ebs_csi_cloud.cloud.wait import Backoff, FixedInterval
from fake_ec2 import FakeEC2Client, make_client_error

# Schedules short enough to keep the suite fast.
FAST_POLL = FixedInterval(interval=0.001, timeout=1.0)
FAST_BACKOFF = Backoff(duration=0.001, factor=1.0, steps=5)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests spanning the cloud layer or the CLI")
    config.addinivalue_line("markers", "slow: multi-step scenarios")


@pytest.fixture
def ctx():
    """Request context with a generous deadline."""
    return RequestContext(timeout=30)


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors with a given code."""
    return make_client_error


@pytest.fixture
def mock_ec2():
    """MagicMock standing in for a boto3 EC2 client."""
    return MagicMock()


@pytest.fixture
def fake_ec2():
    """In-memory EC2 client with one instance, i-1."""
    ec2 = FakeEC2Client()
    ec2.add_instance("i-1")
    return ec2


@pytest.fixture
def ec2_cloud(fake_ec2):
    """EC2Cloud over the in-memory client with fast wait schedules."""
    cloud = EC2Cloud("us-test-1", fake_ec2)
    cloud.volumes.volume_available_poll = FAST_POLL
    cloud.volumes.modification_backoff = FAST_BACKOFF
    cloud.attachments.attachment_backoff = FAST_BACKOFF
    return cloud


@pytest.fixture
def fake_cloud():
    """FakeCloudProvider with instances i-1 and i-2."""
    return FakeCloudProvider(zones=["us-test-1a"], instances=["i-1", "i-2"])


@pytest.fixture
def mock_get_cloud(fake_cloud):
    """Route both CLI command groups to the fake cloud."""
    with patch("ebs_csi_cloud.cli.commands.volume.get_cloud", return_value=fake_cloud), patch(
        "ebs_csi_cloud.cli.commands.snapshot.get_cloud", return_value=fake_cloud
    ):
        yield fake_cloud


@pytest.fixture
def mock_setup_logging():
    """Skip oslo.log setup in CLI tests."""
    with patch("ebs_csi_cloud.cli.cli.setup_logging") as mock:
        yield mock
