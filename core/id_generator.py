import random

# Двухзначные коды сущностей
TYPE_POSTFIX = {
    "site_users": 1,
    "matchings": 2,
    "applies": 3,
    "notifications": 4,
}

# Ширина случайной части: быстрорастущим таблицам нужна шире
RANDOM_DIGITS = {
    "site_users": 6,
    "matchings": 6,
    "applies": 8,
    "notifications": 10,
}

MAX_ATTEMPTS = 5


def generate_random_id(entity: str) -> int:
    """Возвращает id: случайные цифры (RANDOM_DIGITS) + 2-значный постфикс сущности."""
    if entity not in TYPE_POSTFIX:
        raise ValueError(f"Unknown entity for ID generation: {entity}")
    rand = random.randint(0, 10 ** RANDOM_DIGITS[entity] - 1)
    return rand * 100 + TYPE_POSTFIX[entity]
