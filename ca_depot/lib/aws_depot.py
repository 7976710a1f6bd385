"""AWS-backed depot: CA material in SSM Parameter Store, serial state in DynamoDB."""

import logging

import boto3
from botocore.exceptions import ClientError
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from mypy_boto3_dynamodb import DynamoDBClient as DynamoDBClientType

from .cert_utils import load_ca_certificate, load_ca_key
from .depot import Depot, format_serial, parse_serial, random_serial
from .distribution import DistributionClient
from .errors import CALoadError, CertLoadError, DistributionError, KeyLoadError, SerialIOError

logger = logging.getLogger(__name__)

SERIAL_ITEM_ID = "serial"


class AwsDepot(Depot):
    """Depot reading the CA from SSM and allocating serials through DynamoDB.

    SSM parameters:
        /{project_name}/{account}/ca/signing/certificate  (String)
        /{project_name}/{account}/ca/signing/private-key  (SecureString)

    DynamoDB item {"id": "serial", "serial": "<hex>"} holds the last issued
    serial. Every write is conditional on the value read, so a concurrent
    allocator fails with SerialIOError instead of reusing a serial.
    """

    def __init__(
        self,
        project_name: str,
        account: str,
        table_name: str,
        distributor: DistributionClient | None = None,
        region: str | None = None,
    ) -> None:
        """Initialize AWS depot.

        Args:
            project_name: Project name prefix for SSM paths
            account: Account/environment name (e.g., 'sandbox')
            table_name: DynamoDB table holding the serial item
            distributor: Client used by distribute()
            region: AWS region (default: boto3 configuration)
        """
        self.project_name = project_name
        self.account = account
        self.table_name = table_name
        self.distributor = distributor
        self.ssm = boto3.client("ssm", region_name=region)
        self.dynamodb: DynamoDBClientType = boto3.client("dynamodb", region_name=region)

    @property
    def cert_parameter(self) -> str:
        return f"/{self.project_name}/{self.account}/ca/signing/certificate"

    @property
    def key_parameter(self) -> str:
        return f"/{self.project_name}/{self.account}/ca/signing/private-key"

    def _get_parameter(
        self, name: str, decrypt: bool, error: type[CALoadError]
    ) -> bytes:
        try:
            response = self.ssm.get_parameter(Name=name, WithDecryption=decrypt)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ParameterNotFound":
                raise error(f"SSM parameter not found: {name}") from e
            raise error(f"SSM parameter {name} not readable: {error_code}") from e
        return response["Parameter"]["Value"].encode("utf-8")

    def ca(self, password: bytes) -> tuple[list[x509.Certificate], RSAPrivateKey]:
        cert_pem = self._get_parameter(self.cert_parameter, False, CertLoadError)
        cert = load_ca_certificate(cert_pem)
        key_pem = self._get_parameter(self.key_parameter, True, KeyLoadError)
        key = load_ca_key(key_pem, password)
        return [cert], key

    def _read_serial(self) -> tuple[int, str] | None:
        """Return (serial, raw attribute value), or None if no item exists.

        The conditional update must compare against the raw value, which may
        be uppercase or zero-padded.
        """
        try:
            response = self.dynamodb.get_item(
                TableName=self.table_name,
                Key={"id": {"S": SERIAL_ITEM_ID}},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise SerialIOError(f"cannot read serial from {self.table_name}: {e}") from e

        item = response.get("Item")
        if not item:
            return None
        raw = item["serial"]["S"]
        return parse_serial(raw), raw

    def serial(self) -> int:
        stored = self._read_serial()
        try:
            if stored is None:
                serial = random_serial()
                self.dynamodb.put_item(
                    TableName=self.table_name,
                    Item={"id": {"S": SERIAL_ITEM_ID}, "serial": {"S": format_serial(serial)}},
                    ConditionExpression="attribute_not_exists(id)",
                )
            else:
                current, raw = stored
                serial = current + 1
                self.dynamodb.update_item(
                    TableName=self.table_name,
                    Key={"id": {"S": SERIAL_ITEM_ID}},
                    UpdateExpression="SET #s = :next",
                    ConditionExpression="#s = :current",
                    ExpressionAttributeNames={"#s": "serial"},
                    ExpressionAttributeValues={
                        ":next": {"S": format_serial(serial)},
                        ":current": {"S": raw},
                    },
                )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code == "ConditionalCheckFailedException":
                logger.warning("Serial in %s changed during allocation", self.table_name)
                raise SerialIOError("serial was allocated concurrently, retry issuance") from e
            raise SerialIOError(f"cannot write serial to {self.table_name}: {e}") from e

        return serial

    def distribute(self, name: str, allow_renewal_days: int, cert: x509.Certificate) -> bool:
        if self.distributor is None:
            raise DistributionError("no distribution client configured")
        return self.distributor.distribute(name, allow_renewal_days, cert)
