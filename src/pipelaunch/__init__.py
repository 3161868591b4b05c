"""
Pipelaunch: one-shot EC2 provisioning for remote data pipelines.

Stage inputs in S3, boot a single transient instance, wait until it can
be reached, and hand the pipeline off to it. Cleanup on failure is the
operator's job, except when the instance never becomes reachable.
"""

import os

__version__ = "0.1.0"

PIPELAUNCH_HOME = os.environ.get("PIPELAUNCH_HOME", "~/.pipelaunch")
