"""
Optional values, captured exceptions and two-armed results.

Run: python examples/error_handling.py
"""
from dataclasses import dataclass

from fpkit import Option, Some, NONE, from_nullable, Try, Either, Left, Right


@dataclass(frozen=True)
class Shipment:
    tracking_id: str
    weight_kg: float
    carrier: str


CARRIER_RATES = {"parcelco": 4.5, "swiftpost": 6.0}


def find_carrier_rate(carrier: str) -> Option[float]:
    return from_nullable(CARRIER_RATES.get(carrier))


def parse_weight(raw: str) -> Try[float]:
    return Try.of(lambda: float(raw))


def check_weight(kg: float) -> Either[str, float]:
    return Either.cond(0 < kg <= 30, lambda: kg, lambda: f"weight {kg} kg outside 0-30 kg")


def shipping_cost(s: Shipment) -> Either[str, float]:
    return (check_weight(s.weight_kg)
            .flat_map(lambda kg: find_carrier_rate(s.carrier)
                      .to_either(lambda: f"unknown carrier {s.carrier!r}")
                      .map(lambda rate: round(kg * rate, 2))))


def main():
    # Option: absence without None checks
    for carrier in ("parcelco", "horsecart"):
        rate = find_carrier_rate(carrier)
        print(carrier, rate, rate.map(lambda r: r * 2).get_or_else(0.0))

    # Try: exceptions as values
    for raw in ("2.5", "two"):
        print(raw, "->", parse_weight(raw).fold(lambda ex: f"rejected ({ex})", lambda kg: f"{kg} kg"))

    # Either: the first failing step short-circuits the rest
    shipments = [
        Shipment("TRK-1", 2.0, "parcelco"),
        Shipment("TRK-2", 45.0, "parcelco"),
        Shipment("TRK-3", 1.0, "horsecart"),
    ]
    for s in shipments:
        print(s.tracking_id, shipping_cost(s).fold(lambda e: f"error: {e}", lambda c: f"cost {c}"))

    # Converting between the three
    print(parse_weight("oops").to_either().map_left(type).swap())
    print(Right(3).to_option(), Left("gone").to_option() is NONE, Some(1).to_list())


if __name__ == "__main__":
    main()
