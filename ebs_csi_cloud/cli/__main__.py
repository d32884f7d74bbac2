#!/usr/bin/env python3
"""
Entry point for ebs-csi-cloud CLI tool.
"""

import sys

from ebs_csi_cloud.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
