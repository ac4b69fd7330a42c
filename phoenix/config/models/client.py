"""Service client configuration."""

from pydantic import BaseModel, Field, SecretStr


class ClientConfig(BaseModel):
    """Connection settings for the service under test.

    The timeouts are generous because health waits for a freshly restarted
    cluster can take longer than a minute while delayed shards recover.
    """

    base_url: str = Field(
        default="http://localhost:9200",
        description="Base URL of the service under test",
    )
    username: str = Field(default="test_user", description="Basic auth user")
    password: SecretStr = Field(
        default=SecretStr("x-pack-test-password"),
        description="Basic auth password",
    )
    timeout: float = Field(
        default=90.0,
        gt=0,
        description="Per-request socket timeout in seconds",
    )
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
