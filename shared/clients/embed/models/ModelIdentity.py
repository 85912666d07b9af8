"""ModelIdentity model: name plus provider of an embedding model."""

from pydantic import BaseModel


class ModelIdentity(BaseModel):
    """Identity of the embedding model that produced a vector.

    A model can be addressed by several display names ("nomic-embed-text",
    "nomic-embed-text:latest", "ollama/nomic-embed-text"), so identities are
    compared with is_equivalent() rather than string equality.

    Attributes:
        name:      Model name as configured (e.g. "text-embedding-3-small").
        provider:  Engine that serves the model (e.g. "openai"). Empty if unknown.
    """

    name: str
    provider: str = ""

    def to_key(self) -> str:
        """Serialised form stored on every record, "<name>|<provider>"."""
        return f"{self.name}|{self.provider}" if self.provider else self.name

    @classmethod
    def from_key(cls, key: str) -> "ModelIdentity":
        name, _, provider = key.partition("|")
        return cls(name=name.strip(), provider=provider.strip())

    def normalized_name(self) -> str:
        name = self.name.strip().lower()
        if name.startswith("models/"):
            name = name[len("models/"):]
        provider = self.provider.strip().lower()
        if provider and name.startswith(provider + "/"):
            name = name[len(provider) + 1:]
        if name.endswith(":latest"):
            name = name[: -len(":latest")]
        return name

    def is_equivalent(self, other: "ModelIdentity") -> bool:
        if self.normalized_name() != other.normalized_name():
            return False
        mine = self.provider.strip().lower()
        theirs = other.provider.strip().lower()
        # records written without a provider match on name alone
        if not mine or not theirs:
            return True
        return mine == theirs
