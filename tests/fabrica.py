"""Construtores de objetos de teste."""

from faturamento.domain.models import DetalheEnvio, ItemPreco


def item(id_, categoria, descricao, custo=0.0, margem=0.0, preco=None, subcategoria=""):
    """ItemPreco com preço derivado de custo e margem quando `preco` não é informado."""
    if preco is None:
        preco = custo * (1 + margem / 100)
    return ItemPreco(
        id=id_,
        categoria=categoria,
        subcategoria=subcategoria,
        descricao=descricao,
        custo_unitario=custo,
        margem_lucro=margem,
        preco_venda=preco,
    )


def detalhe(id_, item_id, quantidade, codigo="PED-1", preco=None, custo=None):
    return DetalheEnvio(
        id=id_,
        cobranca_id="cob-1",
        data="2025-10-15",
        rastreio="BR1",
        codigo_pedido=codigo,
        tabela_preco_item_id=item_id,
        quantidade=quantidade,
        preco_unitario=preco,
        custo_unitario=custo,
    )


def csv(*linhas):
    return "\n".join(linhas)
