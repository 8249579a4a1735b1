"""대시보드 응답 모델 (JSON 직렬화 시 camelCase 키 사용)"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Signal = Literal["bullish", "bearish", "neutral"]


class DashboardModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class DailyDataPoint(DashboardModel):
    date: str
    value: float
    change: float
    change_percent: float


class Index(DashboardModel):
    id: str
    name: str
    symbol: str
    value: float
    change_24h: float = Field(alias="change24h")
    change_percent_24h: float = Field(alias="changePercent24h")


class IndexDetail(Index):
    daily_data: list[DailyDataPoint]


class Indicator(DashboardModel):
    id: str
    name: str
    category: str
    value: float
    signal: Signal
    timestamp: str


class IndicatorDetail(Indicator):
    daily_data: list[DailyDataPoint]
