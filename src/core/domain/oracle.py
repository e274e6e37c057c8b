"""
Oracle — модели данных price feed

- OracleRoundData: ответ latestRoundData() внешнего feed
- OraclePrice: принятый gateway снапшот (round_id, price)
- OracleState: watermark последнего принятого oracle round id
"""

from pydantic import BaseModel, Field


class OracleRoundData(BaseModel):
    """Ответ latestRoundData() (формат aggregator v3)."""

    round_id: int = Field(..., ge=0, description="Feed round id")
    answer: int = Field(..., description="Цена (signed fixed-point)")
    started_at: int = Field(..., ge=0, description="Начало feed round (unix seconds)")
    updated_at: int = Field(..., ge=0, description="Финализация feed round, 0 = не финализирован")
    answered_in_round: int = Field(..., ge=0, description="Round, в котором получен answer")

    model_config = {"frozen": True}


class OraclePrice(BaseModel):
    """Снапшот цены, принятый OracleGateway."""

    round_id: int = Field(..., gt=0)
    price: int

    model_config = {"frozen": True}


class OracleState(BaseModel):
    """
    Watermark оракула.

    Мутабельная модель: OracleGateway продвигает watermark
    на рабочей копии MarketState внутри транзакции.
    """

    last_accepted_round_id: int = Field(default=0, ge=0)
