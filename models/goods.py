from pydantic import BaseModel


class Goods(BaseModel):
    """A goods master record. The name is the natural key across invoices."""
    id: str
    name: str


def goods_key(name: str) -> str:
    """
    Return the key used to match goods across supply and receipt items.

    Matching is by exact, case-sensitive name.  Every comparison of goods
    between invoices goes through here so a move to id-based linking only
    has to change this function.
    """
    return name


def same_goods(a: str, b: str) -> bool:
    return goods_key(a) == goods_key(b)
