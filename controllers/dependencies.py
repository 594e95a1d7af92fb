"""
FastAPI dependencies for the services built at startup
"""

from uuid import UUID

from fastapi import Request

from services.claim_workflow import ClaimWorkflow
from services.membership_service import MembershipService


def get_workflow(request: Request) -> ClaimWorkflow:
    return request.app.state.workflow


def get_membership_service(request: Request) -> MembershipService:
    return request.app.state.membership_service


def current_user_id(current_user: dict) -> UUID:
    return UUID(current_user["user_id"])
