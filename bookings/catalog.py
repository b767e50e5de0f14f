MAIN_SERVICES = {
    'fullService': {
        'name': 'Full Service (Wash, Dry & Fold)',
        'unit_price_centavos': 19900,
    },
    'washDryFold': {
        'name': 'Wash, Dry & Fold',
        'unit_price_centavos': 17900,
    },
}

# Dry cleaning is priced after inspection; the starting price is display-only.
ADD_ONS = {
    'dryCleanBarong': {
        'name': 'Dry Cleaning - Barong',
        'default_price_centavos': 0,
        'starting_price_centavos': 35000,
    },
    'dryCleanCoat': {
        'name': 'Dry Cleaning - Coat',
        'default_price_centavos': 0,
        'starting_price_centavos': 40000,
    },
    'dryCleanGown': {
        'name': 'Dry Cleaning - Gown',
        'default_price_centavos': 0,
        'starting_price_centavos': 65000,
    },
    'dryCleanWeddingGown': {
        'name': 'Dry Cleaning - Wedding Gown',
        'default_price_centavos': 0,
        'starting_price_centavos': 150000,
    },
}

PICKUP_ONLY = 'pickupOnly'
PICKUP_AND_DELIVERY = 'pickupAndDelivery'

SERVICE_OPTION_CHOICES = [
    (PICKUP_ONLY, 'Pickup Only'),
    (PICKUP_AND_DELIVERY, 'Pickup and Delivery'),
]

PICKUP_TIME_CHOICES = [
    ('7am-10am', 'Morning (7am-10am)'),
    ('5pm-7pm', 'Afternoon (5pm-7pm)'),
]

CALAMBA_BARANGAYS = [
    'Bagong Kalsada', 'Bañadero', 'Banlic', 'Barandal',
    'Barangay 1', 'Barangay 2', 'Barangay 3', 'Barangay 4',
    'Barangay 5', 'Barangay 6', 'Barangay 7',
    'Batino', 'Bubuyan', 'Bucal', 'Bunggo', 'Burol', 'Camaligan',
    'Canlubang', 'Halang', 'Hornalan', 'Kay-Anlog', 'La Mesa', 'Laguerta',
    'Lawa', 'Lecheria', 'Lingga', 'Looc', 'Mabato', 'Majada Labas',
    'Makiling', 'Mapagong', 'Masili', 'Maunong', 'Mayapa', 'Milagrosa',
    'Paciano Rizal', 'Palingon', 'Palo-Alto', 'Pansol', 'Parian', 'Prinza',
    'Punta', 'Puting Lupa', 'Real', 'Saimsim', 'Sampiruhan',
    'San Cristobal', 'San Jose', 'San Juan', 'Sirang Lupa', 'Sucol',
    'Turbina', 'Ulango', 'Uwisan',
]

FREE_DELIVERY_BARANGAYS = [
    'Barangay 1', 'Barangay 2', 'Barangay 3', 'Barangay 4',
    'Barangay 5', 'Barangay 6', 'Barangay 7',
    'Lecheria', 'San Juan', 'San Jose', 'Looc', 'Bañadero',
    'Palingon', 'Lingga', 'Sampiruhan', 'Parian',
]

FREE_DELIVERY_MIN_LOADS = 2

SPECIAL_DELIVERY_FEES = {
    'Mapagong': 3000,
    'Bubuyan': 3000,
    'Burol': 3000,
    'Bucal': 3000,
    'Camaligan': 3000,
    'La Mesa': 3000,
}


# Alternate spellings seen on customer forms.
BARANGAY_ALIASES = {
    'Palingong': 'Palingon',
}


def _collapse(value):
    return ' '.join((value or '').split()).casefold()


_ALIAS_KEYS = {_collapse(alias): _collapse(name) for alias, name in BARANGAY_ALIASES.items()}


def normalize_barangay(value):
    key = _collapse(value)
    return _ALIAS_KEYS.get(key, key)


def find_barangay(value):
    key = normalize_barangay(value)
    for name in CALAMBA_BARANGAYS:
        if normalize_barangay(name) == key:
            return name
    return None


def as_dict():
    return {
        'main_services': [
            {'id': key, 'name': item['name'], 'unit_price_centavos': item['unit_price_centavos']}
            for key, item in MAIN_SERVICES.items()
        ],
        'add_ons': [
            {
                'id': key,
                'name': item['name'],
                'default_price_centavos': item['default_price_centavos'],
                'starting_price_centavos': item['starting_price_centavos'],
            }
            for key, item in ADD_ONS.items()
        ],
        'service_options': [value for value, _ in SERVICE_OPTION_CHOICES],
        'pickup_times': [value for value, _ in PICKUP_TIME_CHOICES],
        'barangays': list(CALAMBA_BARANGAYS),
        'free_delivery_barangays': list(FREE_DELIVERY_BARANGAYS),
        'free_delivery_min_loads': FREE_DELIVERY_MIN_LOADS,
    }
