"""Common records shared by every source in a race."""

from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

QUERY_PLACEHOLDER = "{query}"


class NormalizedResult(BaseModel):
    """Address in the common shape. Absent fields are empty strings."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(default="", description="Lookup key echoed by the source (CEP)")
    street_line: str = Field(default="", description="Street name")
    district: str = Field(default="", description="Neighborhood / bairro")
    city: str = Field(default="", description="City / localidade")
    region: str = Field(default="", description="State code / UF")


class SourceDescriptor(BaseModel):
    """One configured source: its name and the URL template used to query it."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url_template: str = Field(min_length=1)

    def build_url(self, query: str) -> str:
        """
        Substitute the query into the URL template.

        Templates without a ``{query}`` placeholder get the query appended, so a
        plain base URL such as ``https://brasilapi.com.br/api/cep/v1/`` works.
        """
        quoted = quote(query, safe="")
        if QUERY_PLACEHOLDER in self.url_template:
            return self.url_template.replace(QUERY_PLACEHOLDER, quoted)
        return f"{self.url_template}{quoted}"


class RaceResult(BaseModel):
    """The single winning answer of a race."""

    model_config = ConfigDict(frozen=True)

    result: NormalizedResult
    source: str
    elapsed: float = Field(description="Seconds from race start to the win")


class FailurePolicy(str, Enum):
    """How the coordinator reacts to a source that exhausted its retries."""

    SHORT_CIRCUIT = "short_circuit"
    WAIT_ALL = "wait_all"
