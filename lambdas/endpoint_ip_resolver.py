"""Resolve the private IPs of a VPC interface endpoint's network interfaces.

The addresses are looked up once per deployment so that each availability
zone's interface can be registered as an IP target on the network load
balancer. Interfaces created moments ago may not have an address yet, so the
lookup is retried with bounded exponential backoff.
"""
import re
import time
from typing import Any, Callable, Mapping, Optional, Sequence

from attrs import define, field
from attrs.validators import ge, instance_of, optional
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

logger = Logger(service="endpoint-ip-resolver", child=True)

NOT_FOUND_ERROR_CODE = "InvalidNetworkInterfaceID.NotFound"
MALFORMED_ERROR_CODE = "InvalidNetworkInterfaceID.Malformed"
INVALID_PARAMETER_ERROR_CODE = "InvalidParameterValue"
# Rejections of the identifiers themselves; another attempt cannot succeed.
UNKNOWN_INTERFACE_ERROR_CODES = frozenset(
    {NOT_FOUND_ERROR_CODE, MALFORMED_ERROR_CODE, INVALID_PARAMETER_ERROR_CODE}
)
INTERFACE_ID_PATTERN = re.compile(r"eni-[0-9a-f]+")

NetworkInterfaceId = str


@define(slots=True, frozen=True)
class NetworkInterfaceRecord:
    id: NetworkInterfaceId = field(validator=instance_of(str))
    private_ip_address: Optional[str] = field(
        default=None, validator=optional(instance_of(str))
    )

    @property
    def is_resolved(self) -> bool:
        return self.private_ip_address is not None


ResolvedTargetSet = tuple[NetworkInterfaceRecord, ...]


@define(slots=True, frozen=True, kw_only=True)
class RetryPolicy:
    max_attempts: int = field(default=8, validator=[instance_of(int), ge(1)])
    base_delay: float = field(default=2.0, converter=float, validator=ge(0.0))
    max_delay: float = field(default=30.0, converter=float, validator=ge(0.0))

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) attempt."""
        return min(self.max_delay, self.base_delay * 2 ** (attempt - 1))

    @property
    def max_total_wait(self) -> float:
        return sum(self.delay_for(attempt) for attempt in range(1, self.max_attempts))

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "RetryPolicy":
        defaults = cls()
        try:
            return cls(
                max_attempts=int(
                    environ.get("RESOLVER_MAX_ATTEMPTS", defaults.max_attempts)
                ),
                base_delay=environ.get(
                    "RESOLVER_BASE_DELAY_SECONDS", defaults.base_delay
                ),
                max_delay=environ.get("RESOLVER_MAX_DELAY_SECONDS", defaults.max_delay),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid resolver retry configuration: {e}") from e


class ResolutionError(Exception):
    """Base class for endpoint IP resolution failures."""


class ResolutionIncomplete(ResolutionError):
    """Requested interfaces do not exist on the provider side."""

    def __init__(self, missing_ids: Sequence[NetworkInterfaceId]) -> None:
        self.missing_ids = tuple(missing_ids)
        super().__init__(f"Network interfaces not found: {', '.join(self.missing_ids)}")


class ResolutionTimeout(ResolutionError):
    """Retry budget exhausted before every interface had an address."""

    def __init__(
        self, unresolved_ids: Sequence[NetworkInterfaceId], attempts: int
    ) -> None:
        self.unresolved_ids = tuple(unresolved_ids)
        self.attempts = attempts
        super().__init__(
            f"Network interfaces still unresolved after {attempts} attempt(s): "
            f"{', '.join(self.unresolved_ids)}"
        )


class ProviderQueryFailure(ResolutionError):
    """The describe call itself failed (transport, auth, throttling)."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(f"DescribeNetworkInterfaces failed: {error}")


def _missing_ids_from_error(
    error: ClientError, requested: Sequence[NetworkInterfaceId]
) -> list[NetworkInterfaceId]:
    message = error.response.get("Error", {}).get("Message", "")
    mentioned = set(INTERFACE_ID_PATTERN.findall(message))
    missing = [interface_id for interface_id in requested if interface_id in mentioned]
    return missing or list(requested)


class EndpointIpResolver:
    def __init__(
        self,
        ec2_client: Any,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._ec2_client = ec2_client
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def resolve(self, interface_ids: Sequence[NetworkInterfaceId]) -> ResolvedTargetSet:
        """Return one record per requested id, in the order requested.

        Raises ResolutionIncomplete as soon as an interface is unknown to EC2,
        and ResolutionTimeout once the retry budget is spent.
        """
        requested = list(interface_ids)
        if not requested:
            raise ValueError("At least one network interface id is required")

        distinct_ids = list(dict.fromkeys(requested))
        unresolved = distinct_ids
        last_failure: Optional[ProviderQueryFailure] = None
        max_attempts = self._retry_policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                records = self._describe(distinct_ids)
            except ProviderQueryFailure as failure:
                last_failure = failure
                logger.warning(
                    "DescribeNetworkInterfaces failed",
                    attempt=attempt,
                    error=str(failure.error),
                )
            else:
                last_failure = None
                missing = [i for i in distinct_ids if i not in records]
                if missing:
                    raise ResolutionIncomplete(missing)

                unresolved = [i for i in distinct_ids if not records[i].is_resolved]
                if not unresolved:
                    logger.info(
                        "Resolved endpoint network interfaces",
                        attempt=attempt,
                        interface_count=len(distinct_ids),
                    )
                    return tuple(records[interface_id] for interface_id in requested)

                logger.info(
                    "Waiting for private IP assignment",
                    attempt=attempt,
                    unresolved=unresolved,
                )

            if attempt < max_attempts:
                self._sleep(self._retry_policy.delay_for(attempt))

        raise ResolutionTimeout(unresolved, attempts=max_attempts) from last_failure

    def _describe(
        self, interface_ids: Sequence[NetworkInterfaceId]
    ) -> dict[NetworkInterfaceId, NetworkInterfaceRecord]:
        try:
            response = self._ec2_client.describe_network_interfaces(
                NetworkInterfaceIds=list(interface_ids)
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in UNKNOWN_INTERFACE_ERROR_CODES:
                raise ResolutionIncomplete(
                    _missing_ids_from_error(e, interface_ids)
                ) from e
            raise ProviderQueryFailure(e) from e
        except BotoCoreError as e:
            raise ProviderQueryFailure(e) from e

        return {
            interface["NetworkInterfaceId"]: NetworkInterfaceRecord(
                id=interface["NetworkInterfaceId"],
                private_ip_address=interface.get("PrivateIpAddress") or None,
            )
            for interface in response.get("NetworkInterfaces", [])
        }
