"""Command line interface for ebs-csi-cloud."""
