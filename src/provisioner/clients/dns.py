"""Route 53 DNS registrar client."""

import asyncio
from collections.abc import Callable
from typing import Any

import boto3
from botocore.exceptions import ClientError

from src.provisioner.core.config import Settings, get_settings
from src.provisioner.core.exceptions import PollTimeoutError
from src.provisioner.core.logging import get_logger
from src.provisioner.core.polling import poll_until

logger = get_logger(__name__)

RECORD_TYPE = "CNAME"


def fqdn(subdomain: str, domain: str) -> str:
    """Fully qualified record name: lowercase with exactly one trailing dot."""
    return f"{subdomain}.{domain}".lower().rstrip(".") + "."


class DnsRegistrarClient:
    """Create, delete and look up the tenant CNAME in a Route 53 hosted zone.

    All boto3 calls are blocking and run in a worker thread.
    """

    def __init__(
        self,
        route53: Any,
        hosted_zone_id: str,
        target: str,
        *,
        ttl: int = 300,
        poll_interval: float = 10,
        max_poll_attempts: int = 30,
    ):
        self.route53 = route53
        self.hosted_zone_id = hosted_zone_id
        self.target = target
        self.ttl = ttl
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DnsRegistrarClient":
        """Build a client from configuration.

        Raises:
            ConfigurationError: If the hosted zone or load-balancer target is unset.
        """
        settings = settings or get_settings()
        return cls(
            boto3.client("route53", region_name=settings.aws_region),
            hosted_zone_id=settings.require("route53_hosted_zone_id"),
            target=settings.require("ingress_lb_dns"),
            ttl=settings.dns_record_ttl,
            poll_interval=settings.dns_propagation_poll_interval_seconds,
            max_poll_attempts=settings.dns_propagation_max_attempts,
        )

    async def upsert(
        self,
        subdomain: str,
        domain: str,
        on_poll: Callable[[int], None] | None = None,
    ) -> bool:
        """Create or replace the tenant CNAME and wait for it to propagate.

        Returns:
            True if the change reached INSYNC, False if the propagation wait
            was exhausted (the change itself was accepted).
        """
        name = fqdn(subdomain, domain)
        response = await asyncio.to_thread(
            self.route53.change_resource_record_sets,
            HostedZoneId=self.hosted_zone_id,
            ChangeBatch={
                "Comment": f"Tenant record for {name}",
                "Changes": [
                    {
                        "Action": "UPSERT",
                        "ResourceRecordSet": {
                            "Name": name,
                            "Type": RECORD_TYPE,
                            "TTL": self.ttl,
                            "ResourceRecords": [{"Value": self.target}],
                        },
                    }
                ],
            },
        )
        change_id = response["ChangeInfo"]["Id"]
        logger.info("DNS record upserted", record=name, target=self.target, change_id=change_id)
        return await self.wait_for_change(change_id, on_poll=on_poll)

    async def wait_for_change(
        self, change_id: str, on_poll: Callable[[int], None] | None = None
    ) -> bool:
        """Poll a change until INSYNC. Exhausting the attempts is logged, not raised."""

        async def _in_sync() -> bool:
            response = await asyncio.to_thread(self.route53.get_change, Id=change_id)
            return response["ChangeInfo"]["Status"] == "INSYNC"

        try:
            await poll_until(
                _in_sync,
                interval=self.poll_interval,
                max_attempts=self.max_poll_attempts,
                description=f"DNS change {change_id}",
                on_attempt=on_poll,
            )
        except PollTimeoutError:
            logger.warning(
                "DNS change not in sync yet, continuing",
                change_id=change_id,
                attempts=self.max_poll_attempts,
            )
            return False
        logger.info("DNS change in sync", change_id=change_id)
        return True

    async def find_record(self, subdomain: str, domain: str) -> dict[str, Any] | None:
        """Return the exact CNAME record set for the tenant hostname, if any."""
        name = fqdn(subdomain, domain)
        response = await asyncio.to_thread(
            self.route53.list_resource_record_sets,
            HostedZoneId=self.hosted_zone_id,
            StartRecordName=name,
            StartRecordType=RECORD_TYPE,
            MaxItems="1",
        )
        for record in response.get("ResourceRecordSets", []):
            if record["Name"].lower() == name and record["Type"] == RECORD_TYPE:
                return record
        return None

    async def exists(self, subdomain: str, domain: str) -> bool:
        return await self.find_record(subdomain, domain) is not None

    async def delete(self, subdomain: str, domain: str) -> bool:
        """Delete the tenant CNAME if present.

        Route 53 only deletes a record set that matches exactly, so the current
        record is looked up first. A record removed concurrently between the
        lookup and the delete is treated as already gone.

        Returns:
            True if a record was deleted, False if there was nothing to delete.
        """
        record = await self.find_record(subdomain, domain)
        if record is None:
            logger.info("DNS record already absent", record=fqdn(subdomain, domain))
            return False

        try:
            await asyncio.to_thread(
                self.route53.change_resource_record_sets,
                HostedZoneId=self.hosted_zone_id,
                ChangeBatch={"Changes": [{"Action": "DELETE", "ResourceRecordSet": record}]},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "InvalidChangeBatch":
                logger.info("DNS record vanished before delete", record=record["Name"])
                return False
            raise

        logger.info("DNS record deleted", record=record["Name"])
        return True
