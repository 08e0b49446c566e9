from fastapi import APIRouter, Depends

from ..core.dependencies import get_load_scorer
from ..schemas.cart import Cart, CartItemRequest, CartScoreResponse
from ..services.cart_service import LoadScorer

router = APIRouter()


@router.post("/score", response_model=CartScoreResponse)
async def score_cart(
    cart: Cart,
    scorer: LoadScorer = Depends(get_load_scorer)
):
    """
    **Score Cart Load**

    Computes how much courier capacity the cart would consume.

    **Returns:**
    - **score**: food load, drink load and the rounded total in load units
    - **warning**: advisory level shown before a pickup time is chosen
    - **subtotal**: sum of the item lines before any discount
    """
    score = scorer.score(cart.items)
    return CartScoreResponse(
        score=score,
        warning=scorer.warning(score.total_score),
        subtotal=cart.subtotal,
    )


@router.post("/items", response_model=Cart)
async def add_item(request: CartItemRequest):
    """Add a line to the cart, merging it with an identical line"""
    return request.cart.add_item(request.item)


@router.post("/items/remove", response_model=Cart)
async def remove_item(request: CartItemRequest):
    """Take one unit of a line out of the cart"""
    return request.cart.remove_item(request.item)
