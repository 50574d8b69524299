from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_actor, get_storefront
from petalstore.domain.schemas import Actor, Address, AddressFields, AddressUpdate
from petalstore.storefront import Storefront

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("/", response_model=List[Address])
def list_addresses(actor: Actor = Depends(get_actor), storefront: Storefront = Depends(get_storefront)):
    return storefront.addresses.list_addresses(actor.id)


@router.post("/", response_model=Address, status_code=201)
def create_address(
    payload: AddressFields,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.addresses.create(actor.id, payload)


@router.patch("/{address_id}", response_model=Address)
def update_address(
    address_id: str,
    payload: AddressUpdate,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.addresses.update(actor.id, address_id, payload)


@router.post("/{address_id}/default", response_model=Address)
def set_default(
    address_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.addresses.set_default(actor.id, address_id)


@router.delete("/{address_id}", status_code=204)
def delete_address(
    address_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    storefront.addresses.delete(actor.id, address_id)
