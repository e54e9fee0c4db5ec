from fastapi import APIRouter
from sqlalchemy import select

from app.dependencies import Context
from app.models import Category
from app.schemas.category import CategoryResponse

router = APIRouter()


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(ctx: Context):
    result = await ctx.db.execute(select(Category).order_by(Category.name))
    return result.scalars().all()
