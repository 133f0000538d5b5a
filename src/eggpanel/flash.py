from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FlashMessage:
    key: str
    message: str
    kind: str = "error"
    title: str | None = None


@dataclass
class FlashStore:
    """Notifications grouped by the context that raised them."""

    items: list[FlashMessage] = field(default_factory=list)

    def add(self, key: str, message: str, kind: str = "error", title: str | None = None) -> None:
        self.items.append(FlashMessage(key=key, message=message, kind=kind, title=title))

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self.items = []
        else:
            self.items = [item for item in self.items if item.key != key]

    def clear_and_add_http_error(self, key: str, error: Exception) -> None:
        self.clear(key)
        self.add(key, str(error) or error.__class__.__name__, kind="error", title="Error")

    def messages(self, key: str) -> list[FlashMessage]:
        return [item for item in self.items if item.key == key]
