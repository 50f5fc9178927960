from .permissions import require_permission, get_current_user, can_perform

__all__ = ["require_permission", "get_current_user", "can_perform"]
