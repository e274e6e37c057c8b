"""
BetInfo — Модель ставки участника

Одна запись на (epoch, participant). amount задаётся один раз,
единственная допустимая мутация — claimed: False → True.
"""

from pydantic import BaseModel, Field

from .round import Position


class BetInfo(BaseModel):
    """
    Ставка участника в раунде.

    Immutable модель (frozen=True).
    """

    position: Position = Field(..., description="Направление ставки (bull/bear)")
    amount: int = Field(..., gt=0, description="Размер ставки в минимальных единицах")
    claimed: bool = Field(default=False, description="Выплата (reward или refund) получена")

    model_config = {"frozen": True}

    def mark_claimed(self) -> "BetInfo":
        """Новый экземпляр с claimed=True."""
        return self.model_copy(update={"claimed": True})
