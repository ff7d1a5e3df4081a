# backend/travel_itinerary/api/deps.py

from typing import Optional

from fastapi import Depends, Header, Request

from travel_itinerary.core.context import AppContext
from travel_itinerary.core.security import bearer_token
from travel_itinerary.models.user_models import UserRecord


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


def current_user(
    authorization: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
) -> UserRecord:
    return ctx.auth.authenticate(bearer_token(authorization))
