"""Cloud orchestration for EBS volumes, snapshots and attachments.

Import the public types from the submodules, e.g.
``from ebs_csi_cloud.cloud.cloud import CloudProvider, new_cloud``.
"""
