from dataclasses import dataclass, field

from django.conf import settings

from .catalog import (
    ADD_ONS,
    FREE_DELIVERY_BARANGAYS,
    FREE_DELIVERY_MIN_LOADS,
    MAIN_SERVICES,
    PICKUP_ONLY,
    SERVICE_OPTION_CHOICES,
    SPECIAL_DELIVERY_FEES,
    normalize_barangay,
)
from .errors import InvalidSelection


@dataclass(frozen=True)
class PricingSnapshot:
    main_service_price_centavos: int
    add_on_prices: dict = field(default_factory=dict)
    delivery_fee_centavos: int = 0
    total_price_centavos: int = 0

    def as_fields(self):
        return {
            'main_service_price_centavos': self.main_service_price_centavos,
            'add_on_prices': dict(self.add_on_prices),
            'delivery_fee_centavos': self.delivery_fee_centavos,
            'total_price_centavos': self.total_price_centavos,
        }


class DeliveryFeeResolver:
    """Maps a barangay and load count to a delivery fee.

    Free-list barangays ship free from two loads up; listed barangays carry
    their special fee; anything else, including unknown names, pays the
    standard fee.
    """

    def __init__(self, standard_fee_centavos=None, free_barangays=None, special_fees=None,
                 free_min_loads=FREE_DELIVERY_MIN_LOADS):
        if standard_fee_centavos is None:
            standard_fee_centavos = settings.LAUNDRY_STANDARD_DELIVERY_FEE_CENTAVOS
        if free_barangays is None:
            free_barangays = FREE_DELIVERY_BARANGAYS
        if special_fees is None:
            special_fees = SPECIAL_DELIVERY_FEES

        self.standard_fee_centavos = standard_fee_centavos
        self.free_min_loads = free_min_loads
        self._free = {normalize_barangay(name) for name in free_barangays}
        self._special = {normalize_barangay(name): fee for name, fee in special_fees.items()}

    def resolve(self, barangay, load_count):
        key = normalize_barangay(barangay)
        if key in self._free and load_count >= self.free_min_loads:
            return 0
        if key in self._special:
            return self._special[key]
        return self.standard_fee_centavos


def _validate_load_count(load_count):
    if isinstance(load_count, bool) or not isinstance(load_count, int) or load_count < 1:
        raise InvalidSelection('Load count must be a whole number of at least 1.', load_count=load_count)


def _validate_price(add_on, value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidSelection(f'Price for {add_on} must be a non-negative amount in centavos.', add_on=add_on)


def dedupe_add_ons(add_ons):
    selected = []
    for add_on in add_ons or []:
        if add_on not in ADD_ONS:
            raise InvalidSelection(f'Unknown add-on service: {add_on}', add_on=add_on)
        if add_on not in selected:
            selected.append(add_on)
    return selected


class PricingCalculator:
    def price(self, main_service, add_ons, load_count, service_option, delivery_fee_centavos, add_on_prices=None):
        if not main_service:
            raise InvalidSelection('A main service must be selected.')
        service = MAIN_SERVICES.get(main_service)
        if service is None:
            raise InvalidSelection(f'Unknown main service: {main_service}', main_service=main_service)
        _validate_load_count(load_count)
        if service_option not in dict(SERVICE_OPTION_CHOICES):
            raise InvalidSelection(f'Unknown service option: {service_option}', service_option=service_option)

        overrides = add_on_prices or {}
        prices = {}
        for add_on in dedupe_add_ons(add_ons):
            value = overrides.get(add_on, ADD_ONS[add_on]['default_price_centavos'])
            _validate_price(add_on, value)
            prices[add_on] = value

        main_price = service['unit_price_centavos'] * load_count
        fee = 0 if service_option == PICKUP_ONLY else delivery_fee_centavos

        return PricingSnapshot(
            main_service_price_centavos=main_price,
            add_on_prices=prices,
            delivery_fee_centavos=fee,
            total_price_centavos=main_price + sum(prices.values()) + fee,
        )


def price_order(order, calculator=None, resolver=None):
    calculator = calculator or PricingCalculator()
    resolver = resolver or DeliveryFeeResolver()
    _validate_load_count(order.load_count)
    fee = resolver.resolve(order.barangay, order.load_count)
    return calculator.price(
        order.main_service,
        order.add_ons,
        order.load_count,
        order.service_option,
        fee,
        add_on_prices=order.add_on_prices,
    )
