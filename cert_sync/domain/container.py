from typing import Any
from dataclasses import dataclass


def parse_domains(label_value: str | None) -> tuple[str, ...]:
    """Split a comma separated label into trimmed, unique domains keeping first-seen order."""
    if not label_value:
        return ()

    domains: dict[str, None] = {}
    for item in label_value.split(","):
        domain = item.strip()
        if domain:
            domains.setdefault(domain, None)

    return tuple(domains)


@dataclass(frozen=True)
class ContainerDescriptor:
    id: str
    name: str
    domains_label: str

    @classmethod
    def from_container(cls, container: Any, domains_label: str) -> "ContainerDescriptor":
        labels = getattr(container, "labels", None) or {}
        name = getattr(container, "name", None) or container.id

        return cls(container.id, name.lstrip("/"), labels.get(domains_label, ""))

    @property
    def domains(self) -> tuple[str, ...]:
        return parse_domains(self.domains_label)

    def __str__(self) -> str:
        return f"{self.name} ({self.id[:12]})"
