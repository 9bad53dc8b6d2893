"""Server catalog snapshots."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ServerRef(BaseModel):
    """Immutable snapshot of one catalog server. Replaced wholesale, never edited."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: int
    name: str
    country: str
    city: str
    region: str = "Europe"
    latency: int = 0  # ms
    load: int = 0  # percent
    premium: bool = False
    obfuscated: bool = False
    double_hop: bool = Field(default=False, validation_alias=AliasChoices("double_hop", "doubleHop"))


class ServerRegion(BaseModel):
    """Servers grouped under one region, as returned by the regions endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    region: str
    count: int = 0
    servers: tuple[ServerRef, ...] = ()
