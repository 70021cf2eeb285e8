"""
api/routes/v1/users.py -- CRUD routes for the user aggregate.

Routes:
  GET    /users        -- list all users (public)
  POST   /users        -- create a user
  GET    /users/{id}   -- user detail with address and employments
  PUT    /users/{id}   -- update (address=null / employments=[] leave those unchanged)
  DELETE /users/{id}   -- delete the user and everything it owns

All logic lives in users.service.UserService. Handlers translate bodies into
domain objects and back; store/service errors (InvalidInput, Conflict,
NotFound) propagate to the exception handlers in api/main.py.

Handlers are plain def so FastAPI runs the blocking store calls on its
thread pool.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import UserBody, UserResponse
from auth.dependencies import require_token
from users.service import UserService

# Auth policy:
# - GET /users:          public -- listing is allowed anonymously
# - everything else:     requires a valid bearer token (require_token)
router = APIRouter()


def _service(request: Request) -> UserService:
    return request.app.state.user_service


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    """Return every user with nested data. Empty list when there are none."""
    return [UserResponse.from_domain(u) for u in _service(request).list_users()]


@router.post("/users", response_model=UserResponse, status_code=201, dependencies=[Depends(require_token)])
def create_user(request: Request, body: UserBody, response: Response) -> UserResponse:
    created = _service(request).create_user(body.to_domain())
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/{created.id}"
    return UserResponse.from_domain(created)


@router.get("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(require_token)])
def get_user(request: Request, user_id: int) -> UserResponse:
    return UserResponse.from_domain(_service(request).get_user(user_id))


@router.put("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(require_token)])
def update_user(request: Request, user_id: int, body: UserBody) -> UserResponse:
    """Replace names and email; replace address/employments only when supplied.

    address=null keeps the stored address. An empty (or omitted) employments
    list keeps the stored employments; a non-empty list replaces all of them.
    """
    return UserResponse.from_domain(_service(request).update_user(user_id, body.to_domain()))


@router.delete("/users/{user_id}", status_code=204, dependencies=[Depends(require_token)])
def delete_user(request: Request, user_id: int) -> Response:
    _service(request).delete_user(user_id)
    return Response(status_code=204)
