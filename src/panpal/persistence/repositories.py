"""Repository pattern for recipe persistence.

Repositories translate ORM rows into the pydantic schemas the services cache.
Write methods only flush; the caller commits once the whole unit of work is
done and then invalidates the affected cache entries.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from panpal.persistence.tables import (
    FavoriteTable,
    IngredientTable,
    RatingTable,
    RecipeTable,
    StepTable,
    UserTable,
)
from panpal.recipes.errors import RecipeNotFoundError
from panpal.recipes.schemas import (
    Ingredient,
    IngredientIn,
    Rating,
    RatingIn,
    RatingPage,
    RatingUser,
    Recipe,
    RecipeCreate,
    RecipePage,
    RecipeUpdate,
    Step,
    StepIn,
    TrendingRecipe,
    User,
    UserUpdate,
    empty_distribution,
)


def _to_recipe(
    row: RecipeTable,
    *,
    is_favorite: bool | None = None,
    my_rating: int | None = None,
) -> Recipe:
    return Recipe(
        id=row.id,
        title=row.title,
        description=row.description,
        cooking_time=row.cooking_time,
        author_id=row.author_id,
        author_name=row.author_name,
        category=row.category,
        image_url=row.image_url,
        rating_avg=round(row.rating_avg or 0.0, 2),
        rating_count=row.rating_count or 0,
        is_favorite=is_favorite,
        my_rating=my_rating,
        created_at=row.created_at,
        updated_at=row.updated_at,
        ingredients=[
            Ingredient(id=i.id, name=i.name, quantity=i.quantity) for i in row.ingredients
        ],
        steps=[
            Step(
                id=s.id,
                step_number=s.step_number,
                instruction=s.instruction,
                image_url=s.image_url,
            )
            for s in row.steps
        ],
    )


def _to_user(row: UserTable) -> User:
    return User(id=row.id, email=row.email, name=row.name, avatar_url=row.avatar_url)


def _ingredients(items: Iterable[IngredientIn]) -> list[IngredientTable]:
    return [IngredientTable(name=i.name, quantity=i.quantity) for i in items]


def _steps(items: Iterable[StepIn]) -> list[StepTable]:
    return [
        StepTable(
            step_number=s.step_number or index,
            instruction=s.instruction,
            image_url=s.image_url,
        )
        for index, s in enumerate(items, start=1)
    ]


class BaseRepository:
    """Base repository holding the unit-of-work session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def _viewer_state(
        self, recipe_ids: Sequence[str], viewer_id: str | None
    ) -> tuple[set[str], dict[str, int]]:
        """Favorite flags and own scores of one viewer for a set of recipes."""
        if viewer_id is None or not recipe_ids:
            return set(), {}

        favorites = await self.session.scalars(
            select(FavoriteTable.recipe_id).where(
                FavoriteTable.user_id == viewer_id,
                FavoriteTable.recipe_id.in_(recipe_ids),
            )
        )
        scores = await self.session.execute(
            select(RatingTable.recipe_id, RatingTable.score).where(
                RatingTable.user_id == viewer_id,
                RatingTable.recipe_id.in_(recipe_ids),
                RatingTable.deleted_at.is_(None),
            )
        )
        return set(favorites.all()), {recipe_id: score for recipe_id, score in scores.all()}

    async def _to_recipes(
        self, rows: Sequence[RecipeTable], viewer_id: str | None
    ) -> list[Recipe]:
        if viewer_id is None:
            return [_to_recipe(row) for row in rows]
        favorites, scores = await self._viewer_state([row.id for row in rows], viewer_id)
        return [
            _to_recipe(row, is_favorite=row.id in favorites, my_rating=scores.get(row.id))
            for row in rows
        ]


class RecipeRepository(BaseRepository):
    """Repository for recipes and their ingredients and steps."""

    async def _load(self, recipe_id: str) -> RecipeTable | None:
        stmt = (
            select(RecipeTable)
            .where(RecipeTable.id == recipe_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, recipe_id: str, viewer_id: str | None = None) -> Recipe | None:
        row = await self._load(recipe_id)
        if row is None:
            return None
        return (await self._to_recipes([row], viewer_id))[0]

    async def get_author_id(self, recipe_id: str) -> str | None:
        return await self.session.scalar(
            select(RecipeTable.author_id).where(RecipeTable.id == recipe_id)
        )

    async def list_page(
        self,
        *,
        category: str | None,
        search: str | None,
        page: int,
        limit: int,
        viewer_id: str | None,
    ) -> RecipePage:
        """List recipes newest first, filtered by category and title search."""
        conditions = []
        if category:
            conditions.append(RecipeTable.category == category)
        if search:
            conditions.append(RecipeTable.title.icontains(search, autoescape=True))

        total = await self.session.scalar(
            select(func.count()).select_from(RecipeTable).where(*conditions)
        )
        stmt = (
            select(RecipeTable)
            .where(*conditions)
            .order_by(RecipeTable.created_at.desc(), RecipeTable.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.scalars(stmt)).all()
        return RecipePage(
            items=await self._to_recipes(rows, viewer_id),
            page=page,
            limit=limit,
            total=total or 0,
        )

    async def trending(self, since: datetime, limit: int) -> list[TrendingRecipe]:
        """Rank recipes by rating scores plus favorites added since `since`."""
        rating_score = (
            select(
                RatingTable.recipe_id.label("recipe_id"),
                func.sum(RatingTable.score).label("score"),
            )
            .where(RatingTable.deleted_at.is_(None), RatingTable.updated_at >= since)
            .group_by(RatingTable.recipe_id)
            .subquery()
        )
        favorite_score = (
            select(
                FavoriteTable.recipe_id.label("recipe_id"),
                func.count().label("score"),
            )
            .where(FavoriteTable.created_at >= since)
            .group_by(FavoriteTable.recipe_id)
            .subquery()
        )
        score = func.coalesce(rating_score.c.score, 0) + func.coalesce(favorite_score.c.score, 0)
        stmt = (
            select(RecipeTable, score.label("score"))
            .outerjoin(rating_score, rating_score.c.recipe_id == RecipeTable.id)
            .outerjoin(favorite_score, favorite_score.c.recipe_id == RecipeTable.id)
            .where(score > 0)
            .order_by(score.desc(), RecipeTable.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            TrendingRecipe(recipe=_to_recipe(row), score=float(value))
            for row, value in result.all()
        ]

    async def create(self, author_id: str, author_name: str, data: RecipeCreate) -> Recipe:
        row = RecipeTable(
            title=data.title,
            description=data.description,
            cooking_time=data.cooking_time,
            category=data.category,
            image_url=data.image_url,
            author_id=author_id,
            author_name=author_name,
            ingredients=_ingredients(data.ingredients),
            steps=_steps(data.steps),
        )
        self.session.add(row)
        await self.session.flush()

        created = await self._load(row.id)
        if created is None:
            raise RecipeNotFoundError(row.id)
        return _to_recipe(created)

    async def update(self, recipe_id: str, data: RecipeUpdate) -> Recipe | None:
        row = await self._load(recipe_id)
        if row is None:
            return None

        changes = data.model_dump(exclude_unset=True, exclude={"ingredients", "steps"})
        for field, value in changes.items():
            setattr(row, field, value)
        if data.ingredients is not None:
            row.ingredients = _ingredients(data.ingredients)
        if data.steps is not None:
            row.steps = _steps(data.steps)
        row.updated_at = datetime.now(UTC)
        await self.session.flush()

        updated = await self._load(recipe_id)
        return _to_recipe(updated) if updated is not None else None

    async def set_image(self, recipe_id: str, image_url: str) -> Recipe | None:
        result = await self.session.execute(
            update(RecipeTable)
            .where(RecipeTable.id == recipe_id)
            .values(image_url=image_url, updated_at=datetime.now(UTC))
        )
        if result.rowcount == 0:
            return None
        await self.session.flush()
        row = await self._load(recipe_id)
        return _to_recipe(row) if row is not None else None

    async def delete(self, recipe_id: str) -> bool:
        row = await self._load(recipe_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True


class RatingRepository(BaseRepository):
    """Repository for ratings; keeps the recipe aggregates in step."""

    async def _refresh_stats(self, recipe_id: str) -> None:
        average, count = (
            await self.session.execute(
                select(func.avg(RatingTable.score), func.count(RatingTable.id)).where(
                    RatingTable.recipe_id == recipe_id,
                    RatingTable.deleted_at.is_(None),
                )
            )
        ).one()
        await self.session.execute(
            update(RecipeTable)
            .where(RecipeTable.id == recipe_id)
            .values(rating_avg=float(average or 0.0), rating_count=count or 0)
        )

    async def _find(self, recipe_id: str, user_id: str) -> RatingTable | None:
        result = await self.session.execute(
            select(RatingTable).where(
                RatingTable.recipe_id == recipe_id, RatingTable.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def upsert(self, recipe_id: str, user_id: str, data: RatingIn) -> None:
        row = await self._find(recipe_id, user_id)
        if row is None:
            row = RatingTable(recipe_id=recipe_id, user_id=user_id)
            self.session.add(row)
        row.score = data.score
        row.comment = data.comment
        row.image_urls = list(data.image_urls)
        row.deleted_at = None
        row.updated_at = datetime.now(UTC)
        await self.session.flush()
        await self._refresh_stats(recipe_id)

    async def soft_delete(self, recipe_id: str, user_id: str) -> bool:
        row = await self._find(recipe_id, user_id)
        if row is None or row.deleted_at is not None:
            return False
        row.deleted_at = datetime.now(UTC)
        await self.session.flush()
        await self._refresh_stats(recipe_id)
        return True

    async def list_page(self, recipe_id: str, page: int, limit: int) -> RatingPage | None:
        stats = (
            await self.session.execute(
                select(RecipeTable.rating_avg, RecipeTable.rating_count).where(
                    RecipeTable.id == recipe_id
                )
            )
        ).one_or_none()
        if stats is None:
            return None

        active = (RatingTable.recipe_id == recipe_id, RatingTable.deleted_at.is_(None))
        total = await self.session.scalar(
            select(func.count()).select_from(RatingTable).where(*active)
        )
        distribution = empty_distribution()
        per_score = await self.session.execute(
            select(RatingTable.score, func.count()).where(*active).group_by(RatingTable.score)
        )
        for score, count in per_score.all():
            distribution[str(score)] = count

        stmt = (
            select(RatingTable, UserTable)
            .join(UserTable, UserTable.id == RatingTable.user_id)
            .where(*active)
            .order_by(RatingTable.created_at.desc(), RatingTable.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        items = [
            Rating(
                id=rating.id,
                score=rating.score,
                comment=rating.comment,
                image_urls=list(rating.image_urls or []),
                user=RatingUser(id=user.id, name=user.name, avatar_url=user.avatar_url),
                created_at=rating.created_at,
            )
            for rating, user in result.all()
        ]
        return RatingPage(
            recipe_id=recipe_id,
            average=round(stats.rating_avg or 0.0, 2),
            count=stats.rating_count or 0,
            distribution=distribution,
            items=items,
            page=page,
            limit=limit,
            total=total or 0,
        )


class FavoriteRepository(BaseRepository):
    """Repository for user favorites."""

    async def add(self, user_id: str, recipe_id: str) -> None:
        existing = await self.session.get(FavoriteTable, (user_id, recipe_id))
        if existing is None:
            self.session.add(FavoriteTable(user_id=user_id, recipe_id=recipe_id))
            await self.session.flush()

    async def remove(self, user_id: str, recipe_id: str) -> bool:
        result = await self.session.execute(
            delete(FavoriteTable).where(
                FavoriteTable.user_id == user_id, FavoriteTable.recipe_id == recipe_id
            )
        )
        await self.session.flush()
        return bool(result.rowcount)

    async def list_page(self, user_id: str, page: int, limit: int) -> RecipePage:
        total = await self.session.scalar(
            select(func.count()).select_from(FavoriteTable).where(FavoriteTable.user_id == user_id)
        )
        stmt = (
            select(RecipeTable)
            .join(FavoriteTable, FavoriteTable.recipe_id == RecipeTable.id)
            .where(FavoriteTable.user_id == user_id)
            .order_by(FavoriteTable.created_at.desc(), RecipeTable.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.scalars(stmt)).all()
        return RecipePage(
            items=await self._to_recipes(rows, user_id),
            page=page,
            limit=limit,
            total=total or 0,
        )


class UserRepository(BaseRepository):
    """Repository for user profiles."""

    async def get(self, user_id: str) -> User | None:
        row = await self.session.get(UserTable, user_id)
        return _to_user(row) if row is not None else None

    async def update(self, user_id: str, data: UserUpdate) -> User | None:
        row = await self.session.get(UserTable, user_id)
        if row is None:
            return None
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(row, field, value)
        await self.session.flush()
        return _to_user(row)
