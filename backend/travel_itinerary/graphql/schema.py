# backend/travel_itinerary/graphql/schema.py

"""
GraphQL surface. Resolvers are thin adapters over the same services the REST
routes use; the bearer token comes from the request's Authorization header
through the resolver context, never from arguments.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

import strawberry
from fastapi import Request
from graphql import GraphQLError
from starlette.concurrency import run_in_threadpool
from strawberry.extensions import SchemaExtension
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from travel_itinerary.core.context import AppContext
from travel_itinerary.core.errors import AppError
from travel_itinerary.core.security import bearer_token
from travel_itinerary.models.itinerary_models import ItineraryRecord
from travel_itinerary.models.user_models import AuthResult, UserRecord
from travel_itinerary.services.itinerary_service import ITINERARY_ROUTE

GENERIC_ERROR = "Unexpected error."

T = TypeVar("T")


#############################
# Types                     #
#############################

@strawberry.type
class Activity:
    time: str
    description: str
    location: str


@strawberry.type
class Itinerary:
    id: strawberry.ID = strawberry.field(name="_id")
    user_id: strawberry.ID
    title: str
    destination: str
    start_date: str
    end_date: str
    activities: List[Activity]
    shareable_id: Optional[str]
    created_at: str
    updated_at: str


@strawberry.type
class SharedItinerary:
    id: strawberry.ID = strawberry.field(name="_id")
    title: str
    destination: str
    start_date: str
    end_date: str
    activities: List[Activity]
    created_at: str
    updated_at: str


@strawberry.type
class User:
    id: strawberry.ID = strawberry.field(name="_id")
    email: str
    name: str


@strawberry.type
class AuthPayload:
    token: str
    user: User


@strawberry.type
class ItineraryConnection:
    itineraries: List[Itinerary]
    total: int
    page: int
    pages: int


@strawberry.input
class ActivityInput:
    time: str
    description: str
    location: str


@strawberry.input
class CreateItineraryInput:
    title: str
    destination: str
    start_date: str
    end_date: str
    activities: Optional[List[ActivityInput]] = None


@strawberry.input
class UpdateItineraryInput:
    title: Optional[str] = strawberry.UNSET
    destination: Optional[str] = strawberry.UNSET
    start_date: Optional[str] = strawberry.UNSET
    end_date: Optional[str] = strawberry.UNSET
    activities: Optional[List[ActivityInput]] = strawberry.UNSET


@strawberry.input
class RegisterInput:
    email: str
    password: str
    name: str


@strawberry.input
class LoginInput:
    email: str
    password: str


#############################
# Conversions               #
#############################

def _activities(items: List[Dict[str, str]]) -> List[Activity]:
    return [Activity(**a) for a in items]


def _itinerary(record: ItineraryRecord) -> Itinerary:
    data = record.to_public()
    return Itinerary(
        id=data["_id"],
        user_id=data["userId"],
        title=data["title"],
        destination=data["destination"],
        start_date=data["startDate"],
        end_date=data["endDate"],
        activities=_activities(data["activities"]),
        shareable_id=data["shareableId"],
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
    )


def _shared(data: Dict[str, Any]) -> SharedItinerary:
    return SharedItinerary(
        id=data["_id"],
        title=data["title"],
        destination=data["destination"],
        start_date=data["startDate"],
        end_date=data["endDate"],
        activities=_activities(data["activities"]),
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
    )


def _user(user: UserRecord) -> User:
    return User(id=user.id, email=user.email, name=user.name)


def _auth_payload(result: AuthResult) -> AuthPayload:
    return AuthPayload(token=result.token, user=_user(result.user))


def _activity_dicts(items: Optional[List[ActivityInput]]) -> Optional[List[Dict[str, str]]]:
    if items is None:
        return None
    return [{"time": a.time, "description": a.description, "location": a.location} for a in items]


def _context(info: Info) -> AppContext:
    return info.context["ctx"]


async def _as_user(info: Info, operation: Callable[[AppContext, UserRecord], T]) -> T:
    """Authenticate the bearer, then run ``operation(ctx, user)`` on a worker thread."""
    ctx = _context(info)
    token = info.context.get("token")

    def _run() -> T:
        return operation(ctx, ctx.auth.authenticate(token))

    return await run_in_threadpool(_run)


#############################
# Root Query / Mutation     #
#############################

@strawberry.type
class Query:
    @strawberry.field
    async def itineraries(
        self,
        info: Info,
        destination: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort: str = "createdAt",
    ) -> ItineraryConnection:
        result = await _as_user(info, lambda ctx, user: ctx.itinerary_service.list(
            user, destination=destination, page=page, limit=limit, sort=sort
        ))
        return ItineraryConnection(
            itineraries=[_itinerary(it) for it in result.items],
            total=result.total,
            page=result.page,
            pages=result.pages,
        )

    @strawberry.field
    async def itinerary(self, info: Info, id: strawberry.ID) -> Optional[Itinerary]:
        record = await _as_user(info, lambda ctx, user: ctx.itinerary_service.get(user, str(id)))
        return _itinerary(record)

    @strawberry.field
    async def shared_itinerary(self, info: Info, shareable_id: str) -> Optional[SharedItinerary]:
        data = await run_in_threadpool(_context(info).itinerary_service.shared, shareable_id)
        return _shared(data)

    @strawberry.field
    async def me(self, info: Info) -> Optional[User]:
        return _user(await _as_user(info, lambda ctx, user: user))


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def register(self, info: Info, input: RegisterInput) -> AuthPayload:
        result = await run_in_threadpool(
            _context(info).auth.register, input.email, input.password, input.name
        )
        return _auth_payload(result)

    @strawberry.mutation
    async def login(self, info: Info, input: LoginInput) -> AuthPayload:
        result = await run_in_threadpool(_context(info).auth.login, input.email, input.password)
        return _auth_payload(result)

    @strawberry.mutation
    async def create_itinerary(self, info: Info, input: CreateItineraryInput) -> Itinerary:
        fields = {
            "title": input.title,
            "destination": input.destination,
            "startDate": input.start_date,
            "endDate": input.end_date,
            "activities": _activity_dicts(input.activities),
        }
        record = await _as_user(info, lambda ctx, user: ctx.itinerary_service.create(user, fields))
        return _itinerary(record)

    @strawberry.mutation
    async def update_itinerary(self, info: Info, id: strawberry.ID, input: UpdateItineraryInput) -> Itinerary:
        fields = {
            "title": input.title,
            "destination": input.destination,
            "startDate": input.start_date,
            "endDate": input.end_date,
        }
        partial = {k: v for k, v in fields.items() if v is not strawberry.UNSET}
        if input.activities is not strawberry.UNSET:
            partial["activities"] = _activity_dicts(input.activities)
        record = await _as_user(
            info, lambda ctx, user: ctx.itinerary_service.update(user, str(id), partial)
        )
        return _itinerary(record)

    @strawberry.mutation
    async def delete_itinerary(self, info: Info, id: strawberry.ID) -> bool:
        await _as_user(info, lambda ctx, user: ctx.itinerary_service.delete(user, str(id)))
        return True

    @strawberry.mutation
    async def generate_shareable_link(self, info: Info, id: strawberry.ID) -> str:
        ctx = _context(info)
        shareable_id = await _as_user(info, lambda ctx, user: ctx.itinerary_service.share(user, str(id)))
        return f"{ctx.settings.BASE_URL.rstrip('/')}{ITINERARY_ROUTE}/share/{shareable_id}"


#############################
# Error shaping             #
#############################

class AppErrorExtension(SchemaExtension):
    """
    Tags domain errors with ``extensions.code``; in production replaces the
    message of any other resolver error with a generic text.
    """

    def _format(self, error: GraphQLError, production: bool) -> GraphQLError:
        original = error.original_error
        if isinstance(original, AppError):
            extensions = {"code": original.code, "status": original.status_code}
            message = original.message
        elif original is not None and production:
            extensions = {"code": "INTERNAL_ERROR", "status": 500}
            message = GENERIC_ERROR
            original = None
        else:
            return error

        return GraphQLError(
            message,
            nodes=error.nodes,
            source=error.source,
            positions=error.positions,
            path=error.path,
            original_error=original,
            extensions=extensions,
        )

    def on_operation(self) -> Iterator[None]:
        yield
        result = self.execution_context.result
        errors = getattr(result, "errors", None)
        if not errors:
            return
        context = self.execution_context.context or {}
        ctx = context.get("ctx") if isinstance(context, dict) else None
        production = bool(ctx and ctx.settings.is_production)
        result.errors = [self._format(e, production) for e in errors]


schema = strawberry.Schema(query=Query, mutation=Mutation, extensions=[AppErrorExtension])


def get_graphql_context(request: Request) -> Dict[str, Any]:
    return {
        "ctx": request.app.state.ctx,
        "token": bearer_token(request.headers.get("Authorization", "")),
    }


def build_graphql_router(graphiql: bool = True) -> GraphQLRouter:
    return GraphQLRouter(
        schema,
        graphql_ide="graphiql" if graphiql else None,
        context_getter=get_graphql_context,
    )
