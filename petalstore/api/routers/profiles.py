# petalstore/api/routers/profiles.py
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from petalstore.api.deps import get_access_token, get_actor, get_storefront
from petalstore.domain.schemas import Actor, Profile, TermsAcceptance
from petalstore.services.terms_service import TERMS_VERSION
from petalstore.storefront import Storefront

router = APIRouter(prefix="/profiles", tags=["profiles"])


class NameIn(BaseModel):
    name: str


@router.get("/me", response_model=Actor)
def me(actor: Actor = Depends(get_actor)):
    return actor


@router.patch("/me", response_model=Profile)
def update_name(
    payload: NameIn,
    token: str = Depends(get_access_token),
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.profiles.update_name(actor.id, token, payload.name)


@router.get("/me/terms")
def terms_status(actor: Actor = Depends(get_actor), storefront: Storefront = Depends(get_storefront)):
    acceptance = storefront.terms.get_acceptance(actor.id)
    return {"version": TERMS_VERSION, "accepted": acceptance is not None, "acceptance": acceptance}


@router.post("/me/terms", response_model=TermsAcceptance)
def accept_terms(
    request: Request,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    ip_address = request.client.host if request.client else None
    return storefront.terms.record_acceptance(actor.id, ip_address)
