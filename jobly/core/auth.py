from dataclasses import dataclass


@dataclass(slots=True)
class Principal:
    username: str
    is_admin: bool = False
    subject: str | None = None

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionError("admin privileges required")

    def require_self_or_admin(self, username: str) -> None:
        if self.is_admin:
            return
        if self.username != username:
            raise PermissionError(f"not permitted to act on user {username!r}")
