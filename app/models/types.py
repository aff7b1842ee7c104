from sqlalchemy import String
from sqlalchemy.dialects.mysql import VARCHAR

USER_ID_LENGTH = 64
PAIR_KEY_LENGTH = 2 * USER_ID_LENGTH + 1


def binary_string(length: int) -> String:
    """
    VARCHAR compared byte for byte. User IDs are case-sensitive and opaque, so
    MySQL's default case/pad-insensitive collations would merge distinct pairs.
    """
    return String(length).with_variant(VARCHAR(length, collation="utf8mb4_bin"), "mysql")


UserIdType = binary_string(USER_ID_LENGTH)
PairKeyType = binary_string(PAIR_KEY_LENGTH)
