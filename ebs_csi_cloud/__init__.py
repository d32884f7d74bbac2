"""
EBS CSI cloud - cloud orchestration core of an EBS CSI driver.

This package turns volume, snapshot and attachment requests of the CSI
controller and node services into idempotent calls against the EC2 API.
"""

__version__ = "0.1.0"
__all__ = ["cloud", "devicemanager", "cli"]
