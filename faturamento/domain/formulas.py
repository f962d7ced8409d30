"""
Margin formulas for the price table.

A price item carries three mutually derived fields: the internal unit
cost, the profit margin (in percent) and the sale price. These helpers
convert between them in both directions:

    preco_venda = custo_unitario * (1 + margem / 100)
    margem      = (preco_venda / custo_unitario - 1) * 100

All functions are pure: they depend solely on their inputs and do not
modify any external state.
"""

from typing import Union

Numero = Union[int, float]


def preco_venda_por_margem(custo_unitario: Numero, margem_lucro: Numero) -> float:
    """Return the sale price for a unit cost and a margin in percent.

    Parameters
    ----------
    custo_unitario: float
        Internal cost of one unit of the service.
    margem_lucro: float
        Profit margin in percent (20 means 20%). ``None`` is treated as 0.

    Returns
    -------
    float
        ``custo_unitario * (1 + margem_lucro / 100)``.
    """
    custo = float(custo_unitario or 0.0)
    margem = float(margem_lucro or 0.0)
    return custo * (1.0 + margem / 100.0)


def margem_por_preco_venda(custo_unitario: Numero, preco_venda: Numero) -> float:
    """Solve the margin back from cost and sale price.

    When the cost is unknown (zero or negative) the margin has no meaning
    and 0 is returned.
    """
    custo = float(custo_unitario or 0.0)
    if custo <= 0.0:
        return 0.0
    return (float(preco_venda or 0.0) / custo - 1.0) * 100.0


def custo_por_preco_e_margem(preco_venda: Numero, margem_lucro: Numero) -> float:
    """Recover the unit cost from a sale price and its margin."""
    fator = 1.0 + float(margem_lucro or 0.0) / 100.0
    if fator <= 0.0:
        return 0.0
    return float(preco_venda or 0.0) / fator
