# faturamento/usecases/processar_fatura.py
"""
UC: Processar a fatura mensal de um cliente.

Ponto de entrada do motor: recebe a tabela de preços, o cliente e o texto
dos dois relatórios CSV e devolve a cobrança (rascunho), as linhas e o
período efetivamente observado. Nada é persistido aqui.

Obs.:
- Tabela de preços vazia e rastreio sem coluna de pedido/data abortam o
  processamento (exceção). O restante vira aviso no resultado.
- A mesma entrada produz sempre as mesmas linhas (ids determinísticos).
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from faturamento.adapters.colunas import montar_esquema_custos, resumo_colunas
from faturamento.adapters.parsers import combinar_csvs, parse_csv
from faturamento.config import DEFAULTS, ConfigFaturamento
from faturamento.domain.erros import TabelaPrecosVaziaError
from faturamento.domain.models import (
    Cliente,
    CobrancaMensal,
    CustoAdicional,
    FaturaProcessada,
    ItemPreco,
    PedidoConciliado,
    StatusCobranca,
)
from faturamento.infra.logger import log_file_operation, log_system_event, log_transaction
from faturamento.usecases.agregacao import agregar, montar_resumo
from faturamento.usecases.conciliacao import conciliar, parse_mes_referencia
from faturamento.usecases.precificacao import MotorPrecificacao, linhas_armazenagem


def periodo_detectado(pedidos: Iterable[PedidoConciliado]) -> str:
    """'dd/mm/aaaa - dd/mm/aaaa' entre a menor e a maior data dos pedidos, ou 'N/A'."""
    datas = [p.data for p in pedidos if p.data is not None]
    if not datas:
        return "N/A"
    return f"{min(datas).strftime('%d/%m/%Y')} - {max(datas).strftime('%d/%m/%Y')}"


def data_vencimento(mes: int, ano: int, dia: int) -> date:
    """Dia `dia` do mês seguinte ao de referência."""
    if mes == 12:
        return date(ano + 1, 1, dia)
    return date(ano, mes + 1, dia)


def id_cobranca(cliente_id: str, periodo: Optional[Tuple[int, int]]) -> str:
    if periodo is None:
        return f"draft_{cliente_id}"
    mes, ano = periodo
    return f"draft_{cliente_id}_{ano:04d}_{mes:02d}"


def processar_fatura(
    tabela: Sequence[ItemPreco],
    cliente: Cliente,
    csv_rastreio: str,
    csv_custos: Union[str, Sequence[str]],
    mes_referencia: str,
    data_inicio_armazenagem: str,
    custos_adicionais: Optional[Sequence[CustoAdicional]] = None,
    custos_extras: float = 0.0,
    intervalo_datas: Optional[Tuple[date, date]] = None,
    ignorar_filtro_mes: bool = False,
    config: ConfigFaturamento = DEFAULTS,
) -> FaturaProcessada:
    """Concilia, precifica e totaliza a fatura de um mês.

    Args:
        tabela: Tabela de preços do cliente (ou a global); somente leitura.
        cliente: Cadastro do cliente (estoque e posições de armazenagem).
        csv_rastreio: Texto do relatório de rastreio.
        csv_custos: Texto do relatório de custos, ou uma lista deles.
        mes_referencia: 'Mês/Ano' em português, ex.: 'Outubro/2025'.
        data_inicio_armazenagem: Data das linhas de armazenagem.
        custos_adicionais: Custos lançados manualmente (sem margem).
        custos_extras: Valor repassado diretamente ao total.
        intervalo_datas: (início, fim) substitui o filtro por mês.
        ignorar_filtro_mes: Usa todas as linhas dos relatórios.
        config: Parâmetros do motor.

    Returns:
        FaturaProcessada

    Raises:
        TabelaPrecosVaziaError: tabela de preços vazia.
        ColunaObrigatoriaAusenteError: rastreio sem coluna de pedido ou data.
    """
    if not tabela:
        log_system_event("processar_fatura_sem_tabela", {"cliente": cliente.id}, level="error")
        raise TabelaPrecosVaziaError()

    entrada = {
        "cliente": cliente.id,
        "mes_referencia": mes_referencia,
        "itens_tabela": len(tabela),
        "intervalo": str(intervalo_datas) if intervalo_datas else None,
    }
    log_system_event("processar_fatura_start", entrada)

    try:
        linhas_rastreio = parse_csv(csv_rastreio)
        if isinstance(csv_custos, str):
            linhas_custo = parse_csv(csv_custos)
        else:
            linhas_custo = combinar_csvs(csv_custos)
        log_file_operation("parse", "rastreio", rows_processed=len(linhas_rastreio))
        log_file_operation("parse", "custos", rows_processed=len(linhas_custo))

        conciliacao = conciliar(
            linhas_rastreio,
            linhas_custo,
            mes_referencia,
            intervalo=intervalo_datas,
            ignorar_filtro_mes=ignorar_filtro_mes,
        )

        periodo = parse_mes_referencia(mes_referencia)
        cobranca_id = id_cobranca(cliente.id, periodo)

        esquema = montar_esquema_custos(linhas_custo, config)
        log_system_event("colunas_custos", resumo_colunas(esquema))

        motor = MotorPrecificacao(tabela, esquema, config, cobranca_id)
        precificacao = motor.precificar(conciliacao.pedidos_conciliados)

        armazenagem, avisos_armazenagem = linhas_armazenagem(
            cliente, tabela, data_inicio_armazenagem, cobranca_id
        )
        detalhes = precificacao.detalhes + armazenagem

        avisos: List[str] = list(conciliacao.avisos) + precificacao.avisos + avisos_armazenagem
        if not detalhes:
            avisos.append("Nenhuma linha de cobrança gerada para o período.")
            log_system_event("fatura_sem_linhas", {"cliente": cliente.id, "mes": mes_referencia}, level="warning")

        totais = agregar(detalhes, tabela, custos_adicionais or (), custos_extras)

        vencimento = ""
        if periodo is not None:
            vencimento = data_vencimento(periodo[0], periodo[1], config.dia_vencimento).isoformat()
        elif intervalo_datas is not None:
            fim = intervalo_datas[1]
            vencimento = data_vencimento(fim.month, fim.year, config.dia_vencimento).isoformat()

        cobranca = CobrancaMensal(
            id=cobranca_id,
            cliente_id=cliente.id,
            mes_referencia=mes_referencia,
            data_vencimento=vencimento,
            status=StatusCobranca.PENDENTE,
            total_envio=totais.total_envio,
            quantidade_envios=totais.quantidade_envios,
            total_armazenagem=totais.total_armazenagem,
            total_custos_logisticos=totais.total_custos_logisticos,
            total_custos_adicionais=totais.total_custos_adicionais,
            total_custos_extras=totais.total_custos_extras,
            custo_total=totais.custo_total,
            valor_total=totais.valor_total,
        )

        periodo_txt = periodo_detectado(conciliacao.pedidos_conciliados)
        resumo = montar_resumo(
            totais,
            detalhes,
            pedidos_encontrados=len(conciliacao.pedidos_conciliados),
            periodo_detectado=periodo_txt,
            cliente_nome=cliente.nome,
            mes_referencia=mes_referencia,
            pedidos_digitais=precificacao.pedidos_digitais,
            avisos=avisos,
        )

        resultado = FaturaProcessada(
            cobranca=cobranca,
            detalhes=detalhes,
            periodo_detectado=periodo_txt,
            conciliacao=conciliacao,
            resumo=resumo,
            valores_descartados=precificacao.valores_descartados,
            avisos=avisos,
        )

        log_transaction(
            "processar_fatura",
            entrada,
            result={
                "linhas": len(detalhes),
                "valor_total": round(totais.valor_total, 2),
                "pedidos_conciliados": len(conciliacao.pedidos_conciliados),
                "valores_descartados": len(precificacao.valores_descartados),
            },
        )
        log_system_event("processar_fatura_success", {"cliente": cliente.id, "linhas": len(detalhes)})
        return resultado

    except Exception as e:
        error_msg = str(e)
        log_transaction("processar_fatura", entrada, error=error_msg)
        log_system_event("processar_fatura_error", {"cliente": cliente.id, "error": error_msg}, level="error")
        raise
