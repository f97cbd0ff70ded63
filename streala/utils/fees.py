"""
수수료 계산 유틸리티

모든 금액은 정수 센트(고정소수점)로 다루며, 반올림은 ROUND_HALF_UP을 사용합니다.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from streala.schemas.transaction import FeeBreakdown

Number = Union[Decimal, float, int, str]

# 스트리머별 커미션이 없을 때의 기본 플랫폼 수수료율 (총액 상한 센트, 수수료율)
PLATFORM_FEE_TIERS = (
    (50000, Decimal("0.05")),
    (100000, Decimal("0.04")),
    (500000, Decimal("0.03")),
)
PLATFORM_FEE_TOP_RATE = Decimal("0.025")


def _to_decimal(value: Number) -> Decimal:
    # float는 str을 거쳐야 0.0399 같은 값이 이진 오차 없이 변환됨
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_cents(value: Number) -> int:
    """소수 센트를 가장 가까운 정수 센트로 반올림"""
    return int(_to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def reais_to_cents(amount_reais: Number) -> int:
    """헤알(소수) 금액을 정수 센트로 변환"""
    return round_cents(_to_decimal(amount_reais) * 100)


def default_platform_rate(gross_cents: int) -> Decimal:
    """총액 구간별 기본 플랫폼 수수료율 (R$500 이하 5%, R$1000 이하 4%, R$5000 이하 3%, 초과 2.5%)"""
    for upper_cents, rate in PLATFORM_FEE_TIERS:
        if gross_cents <= upper_cents:
            return rate
    return PLATFORM_FEE_TOP_RATE


def calculate_fees(
    gross_cents: int, provider_rate: Number, platform_rate: Number
) -> FeeBreakdown:
    """
    총액에서 결제사 수수료, 플랫폼 수수료, 스트리머 정산액을 계산합니다.

    Args:
        gross_cents: 총 결제 금액 (센트)
        provider_rate: 결제사 수수료율 (예: 0.0399)
        platform_rate: 플랫폼 수수료율 (예: 0.05)

    Returns:
        FeeBreakdown: net_cents = gross - provider_fee - platform_fee
    """
    if gross_cents < 0:
        raise ValueError(f"gross_cents must be non-negative: {gross_cents}")

    provider_fee_cents = round_cents(gross_cents * _to_decimal(provider_rate))
    platform_fee_cents = round_cents(gross_cents * _to_decimal(platform_rate))
    return FeeBreakdown(
        gross_cents=gross_cents,
        provider_fee_cents=provider_fee_cents,
        platform_fee_cents=platform_fee_cents,
        net_cents=gross_cents - provider_fee_cents - platform_fee_cents,
    )


def format_brl(cents: int) -> str:
    """센트 금액을 'R$ 25,00' 형식으로 표시"""
    reais, rest = divmod(abs(cents), 100)
    sign = "-" if cents < 0 else ""
    return f"{sign}R$ {reais:,}".replace(",", ".") + f",{rest:02d}"
