# faturamento/usecases/agregacao.py
"""
UC: Totais da cobrança e resumo para revisão.

Soma as linhas por grupo (envio, armazenagem, logístico) usando a regra de
subtotal das linhas; custos adicionais entram pelo valor de face e
reembolsos são subtraídos. DIFAL faz parte dos custos logísticos e é
contabilizado também em separado para o resumo.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from faturamento.domain.models import (
    Categoria,
    CustoAdicional,
    DetalheEnvio,
    GrupoCusto,
    ItemPreco,
    ResumoFatura,
    TotaisFatura,
)
from faturamento.domain.policies import categoria_de, custo_detalhe, grupo_custo, subtotal_detalhe
from faturamento.infra.logger import log_system_event

# Códigos de pedido sintéticos (linhas que não vêm de um pedido real)
PREFIXOS_CODIGO_SINTETICO = ("ARMAZENAGEM", "ENTRADA", "LOGÍSTICA")


def valor_custo_adicional(custo: CustoAdicional) -> float:
    valor = float(custo.valor or 0.0)
    return -valor if custo.reembolso else valor


def agregar(
    detalhes: Iterable[DetalheEnvio],
    tabela: Sequence[ItemPreco],
    custos_adicionais: Iterable[CustoAdicional] = (),
    custos_extras: float = 0.0,
) -> TotaisFatura:
    """Totais da cobrança a partir das linhas e dos custos manuais.

    Linhas cujo item não existe na tabela não entram em nenhum total e são
    registradas no log.
    """
    indice = {i.id: i for i in tabela}
    totais = TotaisFatura()
    pedidos_envio = set()

    for d in detalhes:
        item = indice.get(d.tabela_preco_item_id) if d.tabela_preco_item_id else None
        if item is None:
            log_system_event(
                "linha_sem_item",
                {"detalhe": d.id, "item": d.tabela_preco_item_id, "codigo_pedido": d.codigo_pedido},
                level="warning",
            )
            continue

        subtotal = subtotal_detalhe(d, item)
        grupo = grupo_custo(item.categoria)
        if grupo is GrupoCusto.ENVIO:
            totais.total_envio += subtotal
            pedidos_envio.add(d.codigo_pedido)
        elif grupo is GrupoCusto.ARMAZENAGEM:
            totais.total_armazenagem += subtotal
        else:
            totais.total_custos_logisticos += subtotal
            if categoria_de(item.categoria) is Categoria.DIFAL:
                totais.total_difal += subtotal
                totais.quantidade_difal += 1
        totais.custo_total += custo_detalhe(d, item)

    totais.quantidade_envios = len(pedidos_envio)
    totais.total_custos_adicionais = sum(valor_custo_adicional(c) for c in custos_adicionais)
    totais.total_custos_extras = float(custos_extras or 0.0)
    totais.custo_total += totais.total_custos_adicionais + totais.total_custos_extras
    totais.valor_total = (
        totais.total_envio
        + totais.total_armazenagem
        + totais.total_custos_logisticos
        + totais.total_custos_adicionais
        + totais.total_custos_extras
    )
    return totais


def eh_codigo_sintetico(codigo: str) -> bool:
    return (codigo or "").upper().startswith(PREFIXOS_CODIGO_SINTETICO)


def montar_resumo(
    totais: TotaisFatura,
    detalhes: Sequence[DetalheEnvio],
    pedidos_encontrados: int,
    periodo_detectado: str = "N/A",
    cliente_nome: str = "",
    mes_referencia: str = "",
    pedidos_digitais: Optional[List[str]] = None,
    avisos: Optional[List[str]] = None,
) -> ResumoFatura:
    unicos = {d.codigo_pedido for d in detalhes if not eh_codigo_sintetico(d.codigo_pedido)}
    return ResumoFatura(
        total_pedidos_encontrados=pedidos_encontrados,
        total_pedidos_unicos=len(unicos),
        total_envios=totais.total_envio,
        quantidade_envios=totais.quantidade_envios,
        total_difal=totais.total_difal,
        quantidade_difal=totais.quantidade_difal,
        total_armazenagem=totais.total_armazenagem,
        # no resumo o DIFAL aparece em linha própria
        total_custos_logisticos=totais.total_custos_logisticos - totais.total_difal,
        total_geral=totais.valor_total,
        periodo_detectado=periodo_detectado,
        cliente_nome=cliente_nome,
        mes_referencia=mes_referencia,
        pedidos_digitais_ignorados=list(pedidos_digitais or []),
        avisos=list(avisos or []),
    )
