"""
Regras de negócio da tabela de preços e das linhas da fatura.

Este módulo concentra as comparações "mágicas" por texto (nomes de
categoria, a marca "template", custos específicos como DIFAL/seguro/ajuste)
em tabelas de consulta, e expõe as regras de subtotal e de custo usadas
tanto por pedido quanto nos totais da cobrança.
"""

from __future__ import annotations

from typing import Optional, Tuple

from faturamento.domain.formulas import preco_venda_por_margem
from faturamento.domain.models import (
    Categoria,
    DetalheEnvio,
    GrupoCusto,
    ItemPreco,
    ValorBruto,
)

# Preço de venda usado como sentinela de item "template" (repasse)
PRECO_SENTINELA_TEMPLATE = 1.0

MARCADORES_CUSTO_ESPECIFICO: Tuple[str, ...] = ("difal", "seguro", "ajuste")
MARCADORES_ENVIO: Tuple[str, ...] = ("envio", "shipping", "frete")
MARCADORES_PICKING: Tuple[str, ...] = ("pick", "pack")

# Ordem importa: a primeira categoria cujo alias aparece no texto vence.
_ALIASES_CATEGORIA: Tuple[Tuple[Categoria, Tuple[str, ...]], ...] = (
    (Categoria.ENVIOS, ("envios", "envio", "shipments", "shipping")),
    (Categoria.RETORNOS, ("retornos", "retorno", "returns")),
    (Categoria.ARMAZENAGEM, ("armazenamento", "armazenagem", "storage")),
    (Categoria.DIFAL, ("difal",)),
    (Categoria.MAQUILA, ("maquila", "entrada de material")),
    (Categoria.LOGISTICA, ("logística", "logistica", "logistics")),
    (Categoria.AJUSTES, ("ajustes", "ajuste", "adjustments")),
)


def categoria_de(texto: Optional[str]) -> Categoria:
    """Converte o nome livre de uma categoria na categoria canônica."""
    s = (texto or "").strip().lower()
    if not s:
        return Categoria.OUTRA
    for categoria, aliases in _ALIASES_CATEGORIA:
        if s in aliases:
            return categoria
    for categoria, aliases in _ALIASES_CATEGORIA:
        if any(alias in s for alias in aliases):
            return categoria
    return Categoria.OUTRA


def grupo_custo(categoria: Optional[str]) -> GrupoCusto:
    """Envios/Retornos -> envio; Armazenagem -> armazenagem; resto -> logístico."""
    cat = categoria_de(categoria)
    if cat in (Categoria.ENVIOS, Categoria.RETORNOS):
        return GrupoCusto.ENVIO
    if cat is Categoria.ARMAZENAGEM:
        return GrupoCusto.ARMAZENAGEM
    return GrupoCusto.LOGISTICO


def eh_categoria_envio(item: ItemPreco) -> bool:
    return categoria_de(item.categoria) in (Categoria.ENVIOS, Categoria.RETORNOS)


def eh_template(item: Optional[ItemPreco]) -> bool:
    """Item "template": preço de venda 1 e descrição com 'template' ou categoria de envio.

    Templates servem de destino para custos cujo valor vem do CSV no momento
    da fatura; o preço 1 não tem significado derivado.
    """
    if item is None:
        return False
    if abs(float(item.preco_venda or 0.0) - PRECO_SENTINELA_TEMPLATE) > 1e-9:
        return False
    return "template" in (item.descricao or "").lower() or eh_categoria_envio(item)


def eh_custo_especifico(texto: Optional[str]) -> bool:
    """DIFAL, seguro e ajustes são cobrados uma vez por pedido."""
    s = (texto or "").lower()
    return any(m in s for m in MARCADORES_CUSTO_ESPECIFICO)


def eh_coluna_envio(texto: Optional[str]) -> bool:
    s = (texto or "").lower()
    return any(m in s for m in MARCADORES_ENVIO)


def eh_difal(item: ItemPreco) -> bool:
    return categoria_de(item.categoria) is Categoria.DIFAL or "difal" in (item.descricao or "").lower()


def eh_envio_nao_template(item: ItemPreco) -> bool:
    return eh_categoria_envio(item) and not eh_template(item)


def eh_picking_packing(item: Optional[ItemPreco]) -> bool:
    if item is None:
        return False
    textos = (item.categoria or "", item.descricao or "", item.subcategoria or "")
    return any(m in t.lower() for t in textos for m in MARCADORES_PICKING)


def preco_com_margem(item: ItemPreco) -> float:
    return preco_venda_por_margem(item.custo_unitario, item.margem_lucro)


def preco_venda_exibicao(item: ItemPreco) -> float:
    """Preço unitário de venda considerando margem e templates.

    Regras:
        - template de custo específico (DIFAL/seguro/ajuste) com custo > 0
          -> custo * (1 + margem/100);
        - demais templates -> 1 (repasse);
        - itens normais -> recalculado a partir do custo e da margem atuais;
          se o custo for desconhecido, o preço de venda armazenado.
    """
    template = eh_template(item)
    if template and eh_custo_especifico(item.descricao) and item.custo_unitario > 0:
        return preco_com_margem(item)
    if template:
        return PRECO_SENTINELA_TEMPLATE
    if item.custo_unitario > 0:
        return preco_com_margem(item)
    return float(item.preco_venda or 0.0)


def subtotal_detalhe(detalhe: DetalheEnvio, item: Optional[ItemPreco]) -> float:
    """Subtotal de venda de uma linha.

    - ``ValorBruto(v)``: quantidade efetiva 1, preço efetivo ``v``.
    - ``Contagem(n)``: ``n`` vezes o preço calculado pelo motor, ou o preço de
      exibição do item quando a linha não traz preço próprio.
    """
    if isinstance(detalhe.quantidade, ValorBruto):
        return float(detalhe.quantidade.valor)
    if detalhe.preco_unitario is not None:
        return float(detalhe.quantidade.valor) * float(detalhe.preco_unitario)
    if item is None:
        return 0.0
    return float(detalhe.quantidade.valor) * preco_venda_exibicao(item)


def custo_detalhe(detalhe: DetalheEnvio, item: Optional[ItemPreco]) -> float:
    """Custo interno de uma linha (valor do CSV para repasses, custo x quantidade nos demais)."""
    if isinstance(detalhe.quantidade, ValorBruto):
        return float(detalhe.quantidade.valor)
    if detalhe.custo_unitario is not None:
        return float(detalhe.custo_unitario) * float(detalhe.quantidade.valor)
    if item is None:
        return 0.0
    return float(item.custo_unitario or 0.0) * float(detalhe.quantidade.valor)
