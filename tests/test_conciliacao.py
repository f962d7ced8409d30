from datetime import date

import pytest

from faturamento.adapters.parsers import parse_csv
from faturamento.domain.erros import ColunaObrigatoriaAusenteError
from faturamento.usecases.conciliacao import (
    conciliar,
    filtrar_por_intervalo,
    filtrar_por_mes,
    formatar_mes_referencia,
    parse_mes_referencia,
)
from tests.fabrica import csv


@pytest.mark.parametrize(
    "mes,esperado",
    [
        ("Outubro/2025", (10, 2025)),
        ("março/2024", (3, 2024)),
        ("Marco/2024", (3, 2024)),
        (" Dezembro / 2023 ", (12, 2023)),
        ("Outubro-2025", None),
        ("Octubre/2025", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_mes_referencia(mes, esperado):
    assert parse_mes_referencia(mes) == esperado


def test_formatar_mes_referencia():
    assert formatar_mes_referencia(3, 2025) == "Março/2025"


def test_filtros_de_data_descartam_datas_invalidas():
    registros = [
        {"Data": "01/10/2025"},
        {"Data": "31/10/2025"},
        {"Data": "01/11/2025"},
        {"Data": "sem data"},
    ]
    assert len(filtrar_por_mes(registros, "Data", 10, 2025)) == 2
    intervalo = filtrar_por_intervalo(registros, "Data", date(2025, 10, 31), date(2025, 11, 30))
    assert [r["Data"] for r in intervalo] == ["31/10/2025", "01/11/2025"]


def test_conciliacao_particiona_os_pedidos(rastreio_csv, custos_csv):
    res = conciliar(parse_csv(rastreio_csv), parse_csv(custos_csv), "Outubro/2025")

    conciliados = [p.codigo_pedido for p in res.pedidos_conciliados]
    assert conciliados == ["PED-001"]
    assert res.ids_rastreio_sem_match == ["PED-002"]
    # PED-003 é de setembro: fora do período, não aparece em lugar nenhum
    assert res.ids_custo_sem_match == ["PED-004"]
    assert res.linhas_rastreio == 2
    assert res.linhas_custo == 2

    pedido = res.pedidos_conciliados[0]
    assert pedido.data == date(2025, 10, 15)
    assert pedido.rastreio == "BR001"
    assert pedido.linha_custo["Custo de envio"] == "25,50"


def test_conciliacao_custo_duplicado_vale_a_primeira_linha():
    rastreio = parse_csv(csv("Pedido;Data", "PED-1;10/10/2025", "PED-1;10/10/2025"))
    custos = parse_csv(csv("Pedido;Data;Custo X", "PED-1;10/10/2025;1", "PED-1;10/10/2025;2"))
    res = conciliar(rastreio, custos, "Outubro/2025")
    assert len(res.pedidos_conciliados) == 1
    assert res.pedidos_conciliados[0].linha_custo["Custo X"] == "1"


def test_conciliacao_custos_sem_data_usa_tudo():
    rastreio = parse_csv(csv("Pedido;Data", "PED-1;10/10/2025"))
    custos = parse_csv(csv("Pedido;Custo X", "PED-1;1", "PED-9;2"))
    res = conciliar(rastreio, custos, "Outubro/2025")
    assert [p.codigo_pedido for p in res.pedidos_conciliados] == ["PED-1"]
    assert res.ids_custo_sem_match == ["PED-9"]
    assert any("data" in a.lower() for a in res.avisos)
    # sem data nos custos, a data do pedido vem do rastreio
    assert res.pedidos_conciliados[0].data == date(2025, 10, 10)


def test_conciliacao_intervalo_e_sem_filtro(rastreio_csv, custos_csv):
    rastreio = parse_csv(rastreio_csv)
    custos = parse_csv(custos_csv)
    res = conciliar(rastreio, custos, "", intervalo=(date(2025, 9, 1), date(2025, 9, 30)))
    assert res.ids_rastreio_sem_match == ["PED-003"]
    assert res.pedidos_conciliados == []

    res = conciliar(rastreio, custos, "", ignorar_filtro_mes=True)
    assert res.ids_rastreio_sem_match == ["PED-002", "PED-003"]


def test_conciliacao_mes_invalido_nao_e_fatal(rastreio_csv, custos_csv):
    res = conciliar(parse_csv(rastreio_csv), parse_csv(custos_csv), "Outubro")
    assert res.pedidos_conciliados == []
    assert any("inválido" in a for a in res.avisos)


@pytest.mark.parametrize(
    "cabecalho,linha",
    [
        ("Rastreio;Data", "BR1;10/10/2025"),
        ("Número do pedido;Rastreio", "PED-1;BR1"),
    ],
)
def test_rastreio_sem_coluna_obrigatoria_e_fatal(cabecalho, linha):
    with pytest.raises(ColunaObrigatoriaAusenteError):
        conciliar(parse_csv(csv(cabecalho, linha)), [], "Outubro/2025")


def test_layout_flexivel_usa_pedido_como_rastreio():
    rastreio = parse_csv(csv(
        "Number,Email,Placed at,Status,Currency,Subtotal",
        "1001,a@b.com,2025-10-05 10:00:00,paid,BRL,100",
    ))
    custos = parse_csv(csv("Pedido;Data;Custo X", "1001;05/10/2025;1"))
    res = conciliar(rastreio, custos, "Outubro/2025")
    assert res.pedidos_conciliados[0].rastreio == "1001"
