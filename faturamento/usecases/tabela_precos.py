# faturamento/usecases/tabela_precos.py
"""
UC: Manutenção da tabela de preços.

Custo, margem e preço de venda são derivados entre si:
- editar o custo ou a margem recalcula o preço de venda;
- editar o preço de venda recalcula a margem (0 quando o custo é desconhecido).

Itens template mantêm o preço de venda 1 (sentinela de repasse) nas edições
de custo e margem. As atualizações em lote validam tudo antes de alterar e
devolvem uma nova lista: a tabela recebida nunca é modificada.
"""
from __future__ import annotations

from dataclasses import replace
from numbers import Number
from typing import List, Sequence, Tuple

from faturamento.domain.erros import CategoriaSemItensError, MargemInvalidaError
from faturamento.domain.formulas import margem_por_preco_venda, preco_venda_por_margem
from faturamento.domain.models import ItemPreco
from faturamento.domain.policies import PRECO_SENTINELA_TEMPLATE, eh_template
from faturamento.infra.logger import log_tabela_operation, log_transaction


def _validar_margem(margem) -> float:
    if isinstance(margem, bool) or not isinstance(margem, Number):
        raise MargemInvalidaError(margem)
    margem = float(margem)
    if margem != margem or margem < 0:   # NaN ou negativa
        raise MargemInvalidaError(margem)
    return margem


def _preco_derivado(item: ItemPreco) -> float:
    if eh_template(item):
        return PRECO_SENTINELA_TEMPLATE
    return preco_venda_por_margem(item.custo_unitario, item.margem_lucro)


def editar_custo(item: ItemPreco, custo_unitario: float) -> ItemPreco:
    novo = replace(item, custo_unitario=float(custo_unitario))
    novo = replace(novo, preco_venda=_preco_derivado(novo))
    log_tabela_operation("editar_custo", 1, item=item.id, custo=novo.custo_unitario, preco=novo.preco_venda)
    return novo


def editar_margem(item: ItemPreco, margem_lucro: float) -> ItemPreco:
    novo = replace(item, margem_lucro=float(margem_lucro))
    novo = replace(novo, preco_venda=_preco_derivado(novo))
    log_tabela_operation("editar_margem", 1, item=item.id, margem=novo.margem_lucro, preco=novo.preco_venda)
    return novo


def editar_preco_venda(item: ItemPreco, preco_venda: float) -> ItemPreco:
    preco = float(preco_venda)
    novo = replace(item, preco_venda=preco, margem_lucro=margem_por_preco_venda(item.custo_unitario, preco))
    log_tabela_operation("editar_preco_venda", 1, item=item.id, preco=preco, margem=novo.margem_lucro)
    return novo


def atualizar_margem_categoria(
    tabela: Sequence[ItemPreco], categoria: str, margem: float
) -> Tuple[List[ItemPreco], int]:
    """Aplica a mesma margem a todos os itens de uma categoria.

    Returns:
        (nova tabela, quantidade de itens alterados)

    Raises:
        MargemInvalidaError: margem negativa ou não numérica.
        CategoriaSemItensError: nenhum item na categoria.
    """
    m = _validar_margem(margem)
    alvo = (categoria or "").strip().lower()
    indices = [i for i, item in enumerate(tabela) if (item.categoria or "").strip().lower() == alvo]
    if not indices:
        raise CategoriaSemItensError(categoria)

    nova = list(tabela)
    for i in indices:
        item = replace(nova[i], margem_lucro=m)
        nova[i] = replace(item, preco_venda=_preco_derivado(item))

    log_tabela_operation("margem_categoria", len(indices), categoria=categoria, margem=m)
    log_transaction("margem_categoria", {"categoria": categoria, "margem": m}, result={"itens": len(indices)})
    return nova, len(indices)


def atualizar_margem_templates(tabela: Sequence[ItemPreco], margem: float) -> Tuple[List[ItemPreco], int]:
    """Aplica a margem a todos os itens template (o preço de venda segue em 1)."""
    m = _validar_margem(margem)
    nova = list(tabela)
    alterados = 0
    for i, item in enumerate(nova):
        if eh_template(item):
            nova[i] = replace(item, margem_lucro=m, preco_venda=PRECO_SENTINELA_TEMPLATE)
            alterados += 1

    log_tabela_operation("margem_templates", alterados, margem=m)
    log_transaction("margem_templates", {"margem": m}, result={"itens": alterados})
    return nova, alterados
