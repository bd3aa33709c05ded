"""Read-only queries over raw material master data."""

from uuid import UUID

from sqlalchemy import func, select

from production_kernel.domain.dtos import MaterialInfo
from production_kernel.exceptions import MaterialNotFoundError
from production_kernel.models.material import Material
from production_kernel.models.product import FormulaLine
from production_kernel.selectors.base import BaseSelector


class MaterialSelector(BaseSelector[Material]):

    def get(self, material_id: UUID) -> MaterialInfo:
        """
        Raises:
            MaterialNotFoundError: if no material has this id.
        """
        material = self._require(Material, material_id, MaterialNotFoundError)
        return MaterialInfo.from_model(material)

    def find(self, material_id: UUID) -> MaterialInfo | None:
        material = self.session.get(Material, material_id)
        return MaterialInfo.from_model(material) if material else None

    def get_by_code(self, code: str) -> MaterialInfo | None:
        material = self.session.execute(
            select(Material).where(Material.code == code)
        ).scalar_one_or_none()
        return MaterialInfo.from_model(material) if material else None

    def list_materials(self, active_only: bool = False) -> list[MaterialInfo]:
        query = select(Material)
        if active_only:
            query = query.where(Material.is_active.is_(True))
        query = query.order_by(Material.code)
        return [MaterialInfo.from_model(m) for m in self.session.execute(query).scalars()]

    def get_many(self, material_ids: list[UUID]) -> dict[UUID, MaterialInfo]:
        if not material_ids:
            return {}
        rows = self.session.execute(
            select(Material).where(Material.id.in_(material_ids))
        ).scalars()
        return {m.id: MaterialInfo.from_model(m) for m in rows}

    def formula_usage_count(self, material_id: UUID) -> int:
        return self.session.execute(
            select(func.count(FormulaLine.id)).where(FormulaLine.material_id == material_id)
        ).scalar_one()
