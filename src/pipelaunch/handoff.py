"""
Hand the pipeline off to the instance.

The image ships a launch script containing three literal placeholders,
``BUCKET``, ``INSTANCE`` and ``CONFIG``. The handoff copies the config
artifact over, fills the placeholders in, and starts the script
detached.

Submit only: the caller gets no completion signal, exit status or
handle. Whether the pipeline succeeds, and getting its results back to
S3, is the remote script's business.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Mapping

from .errors import PlaceholderError
from .remote import SSHSession

logger = logging.getLogger(__name__)

PLACEHOLDERS = ("BUCKET", "INSTANCE", "CONFIG")
DELIMITER = "/"


def substitute_placeholders(script: str, values: Mapping[str, str]) -> str:
    """Replace each placeholder in *script* with its value.

    Every placeholder in :data:`PLACEHOLDERS` must occur exactly once and
    have a value free of ``/``. All other content is left untouched.

    Raises:
        PlaceholderError: On a missing value, a value containing ``/``,
            or a placeholder that does not occur exactly once.
    """
    for token in PLACEHOLDERS:
        value = values.get(token)
        if not value:
            raise PlaceholderError(token, "no value supplied")
        if DELIMITER in value:
            raise PlaceholderError(token, f"value {value!r} contains {DELIMITER!r}")
        count = script.count(token)
        if count != 1:
            raise PlaceholderError(token, f"expected exactly once in script, found {count}")

    # Splice by position in the original text so a value that spells
    # another placeholder is never substituted twice.
    out = []
    cursor = 0
    for pos, token in sorted((script.index(t), t) for t in PLACEHOLDERS):
        out.append(script[cursor:pos])
        out.append(values[token])
        cursor = pos + len(token)
    out.append(script[cursor:])
    return "".join(out)


def start_pipeline(
    session: SSHSession,
    config_artifact: Path,
    bucket: str,
    instance_id: str,
    remote_config_dir: str,
    remote_script: str,
    remote_log: str,
) -> None:
    """Stage the config, parameterize the launch script, start it detached.

    Args:
        session: ssh access to the instance.
        config_artifact: Local pipeline config file.
        bucket: Data bucket name.
        instance_id: The instance running the pipeline.
        remote_config_dir: Where the config artifact is copied.
        remote_script: Pre-staged launch script on the image.
        remote_log: Where the detached script's output goes.

    Raises:
        PlaceholderError: If the script cannot be parameterized.
        RemoteCommandError: If any ssh/scp step fails.
    """
    logger.info("Copying %s to %s:%s", config_artifact.name, session.target, remote_config_dir)
    session.run(f"mkdir -p {shlex.quote(remote_config_dir)}")
    session.copy_to(config_artifact, remote_config_dir)

    script = session.read_file(remote_script)
    filled = substitute_placeholders(script, {
        "BUCKET": bucket,
        "INSTANCE": instance_id,
        "CONFIG": config_artifact.name,
    })
    session.write_file(remote_script, filled)

    logger.info("Starting %s on %s", remote_script, session.target)
    session.start_detached(f"bash {shlex.quote(remote_script)}", remote_log)
    logger.info(
        "Pipeline started on %s; results will be written to s3://%s when it finishes",
        instance_id, bucket,
    )
