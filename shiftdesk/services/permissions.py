"""
Permission checks shared by the shift, request and building routes.
"""
from ..models.models import User, Request, Building


def is_admin(user: User) -> bool:
    return bool(user.is_admin)


def is_manager(user: User) -> bool:
    return bool(user.is_manager)


def can_review_request(user: User, request: Request) -> bool:
    """
    Check if user can approve or reject a request.
    - Admin can review any request
    - The manager the request is assigned to can review it
    """
    if is_admin(user):
        return True
    return request.manager_id is not None and request.manager_id == user.id


def can_see_building(user: User, building: Building) -> bool:
    """Admins see everything; others see buildings they supervise or that have no supervisor."""
    if is_admin(user):
        return True
    return building.supervisor_id is None or building.supervisor_id == user.id
