"""
AWS provider: typed EC2 and S3 calls for a provisioning run.

Every method returns plain Python values pulled out of the boto3
response dicts. Callers never see rendered CLI text.

Expects AWS credentials via environment variables, ~/.aws/credentials,
or an instance profile:
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_DEFAULT_REGION
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

MANAGED_BY = "pipelaunch"

# Returned for ids that EC2 has not propagated yet right after launch.
NOT_FOUND_CODES = ("InvalidInstanceID.NotFound",)


class AWSProvider:
    """EC2/S3 client pair bound to one region.

    Args:
        region: AWS region (e.g. 'us-west-2'). Falls back to
            AWS_DEFAULT_REGION.
        ec2_client: Pre-built EC2 client (tests inject a mock).
        s3_client: Pre-built S3 client (tests inject a mock).
    """

    def __init__(
        self,
        region: Optional[str] = None,
        ec2_client: Any = None,
        s3_client: Any = None,
    ) -> None:
        self._region = region or os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        self._ec2 = ec2_client
        self._s3 = s3_client

    @property
    def region(self) -> str:
        return self._region

    def _client(self, service: str) -> Any:
        """Create a boto3 client for *service*.

        Raises:
            RuntimeError: If boto3 is not installed.
        """
        try:
            import boto3
        except ImportError:
            raise RuntimeError(
                "pipelaunch requires boto3: pip install boto3"
            )
        return boto3.client(service, region_name=self._region)

    @property
    def ec2(self) -> Any:
        if self._ec2 is None:
            self._ec2 = self._client("ec2")
        return self._ec2

    @property
    def s3(self) -> Any:
        if self._s3 is None:
            self._s3 = self._client("s3")
        return self._s3

    # ------------------------------------------------------------------
    # EC2
    # ------------------------------------------------------------------

    def _describe(self, **kwargs: Any) -> List[Dict[str, Any]]:
        """Flatten describe_instances pages into a list of instance dicts."""
        instances: List[Dict[str, Any]] = []
        paginator = self.ec2.get_paginator("describe_instances")
        for page in paginator.paginate(**kwargs):
            for reservation in page.get("Reservations", []):
                instances.extend(reservation.get("Instances", []))
        return instances

    def instance_ids_in_state(
        self,
        state: str,
        instance_ids: Optional[List[str]] = None,
    ) -> List[str]:
        """Return ids of instances currently in *state*.

        Args:
            state: EC2 state name ('running', 'terminated', ...).
            instance_ids: Restrict the query to these ids. ``None`` means
                the whole account in this region.
                Ids EC2 does not know about yet count as not in *state*.

        Returns:
            List of matching instance ids.
        """
        kwargs: Dict[str, Any] = {
            "Filters": [{"Name": "instance-state-name", "Values": [state]}],
        }
        if instance_ids:
            kwargs["InstanceIds"] = list(instance_ids)
        try:
            instances = self._describe(**kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if instance_ids and code in NOT_FOUND_CODES:
                logger.debug("Instances %s not visible yet: %s", instance_ids, code)
                return []
            raise
        return [inst["InstanceId"] for inst in instances]

    def root_device_name(self, image_id: str) -> Optional[str]:
        """Return the image's EBS root device name, or None."""
        resp = self.ec2.describe_images(ImageIds=[image_id])
        images = resp.get("Images", [])
        if not images:
            return None
        image = images[0]
        root = image.get("RootDeviceName")
        if image.get("RootDeviceType", "ebs") != "ebs" or not root:
            return None
        for mapping in image.get("BlockDeviceMappings", []):
            if mapping.get("DeviceName") == root and "Ebs" in mapping:
                return root
        return None

    def run_instance(
        self,
        image_id: str,
        instance_type: str,
        zone: str,
        key_name: str,
        iam_profile: str,
        root_device: str,
        volume_gib: int,
        name: str,
    ) -> str:
        """Launch one instance and return its id."""
        result = self.ec2.run_instances(
            ImageId=image_id,
            InstanceType=instance_type,
            MinCount=1,
            MaxCount=1,
            KeyName=key_name,
            Placement={"AvailabilityZone": zone},
            IamInstanceProfile={"Name": iam_profile},
            BlockDeviceMappings=[
                {
                    "DeviceName": root_device,
                    "Ebs": {
                        "VolumeSize": volume_gib,
                        "DeleteOnTermination": True,
                    },
                }
            ],
            TagSpecifications=[
                {
                    "ResourceType": "instance",
                    "Tags": [
                        {"Key": "Name", "Value": name[:255]},
                        {"Key": "ManagedBy", "Value": MANAGED_BY},
                    ],
                }
            ],
        )
        return result["Instances"][0]["InstanceId"]

    def terminate_instances(self, instance_ids: List[str]) -> None:
        self.ec2.terminate_instances(InstanceIds=list(instance_ids))

    def _instance(self, instance_id: str) -> Dict[str, Any]:
        instances = self._describe(InstanceIds=[instance_id])
        return instances[0] if instances else {}

    def public_address(self, instance_id: str) -> Optional[str]:
        return self._instance(instance_id).get("PublicIpAddress") or None

    def public_hostname(self, instance_id: str) -> Optional[str]:
        return self._instance(instance_id).get("PublicDnsName") or None

    # ------------------------------------------------------------------
    # S3
    # ------------------------------------------------------------------

    def bucket_size_bytes(self, bucket: str) -> int:
        """Sum the sizes of every object in *bucket*."""
        total = 0
        paginator = self.s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket):
            for obj in page.get("Contents", []):
                total += obj.get("Size", 0)
        return total

    def upload_file(self, path: Path, bucket: str, key: Optional[str] = None) -> str:
        """Upload *path* to *bucket* and return the object key."""
        key = key or path.name
        self.s3.upload_file(str(path), bucket, key)
        return key
