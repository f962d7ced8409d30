import pytest

from faturamento.adapters.parsers import parse_csv
from faturamento.domain.erros import ColunaObrigatoriaAusenteError, MesReferenciaInvalidoError
from faturamento.domain.models import Contagem, ValorBruto
from faturamento.usecases.relatorios import (
    COLUNAS_EXPORTACAO_DETALHES,
    contar_envios_no_mes,
    exportar_detalhes_csv,
    filtrar_csv_por_mes,
    validar_multiplos_csvs,
)
from tests.fabrica import csv, detalhe


def test_filtrar_csv_por_mes(rastreio_csv):
    filtrado = filtrar_csv_por_mes(rastreio_csv, "Outubro/2025")
    registros = parse_csv(filtrado)
    assert [r["Pedido"] for r in registros] == ["PED-001", "PED-002"]
    assert list(registros[0].keys()) == ["Pedido", "Data", "Rastreio"]


def test_filtrar_csv_sem_linhas_no_mes(rastreio_csv):
    assert filtrar_csv_por_mes(rastreio_csv, "Janeiro/2024") == ""
    assert filtrar_csv_por_mes("", "Outubro/2025") == ""


def test_filtrar_csv_sem_coluna_de_data():
    with pytest.raises(ColunaObrigatoriaAusenteError):
        filtrar_csv_por_mes(csv("Codigo;Valor", "A;1"), "Outubro/2025")


@pytest.mark.parametrize("mes", ["Outubro", "13/2025", "Octubre/2025"])
def test_mes_invalido(rastreio_csv, mes):
    with pytest.raises(MesReferenciaInvalidoError):
        filtrar_csv_por_mes(rastreio_csv, mes)
    with pytest.raises(MesReferenciaInvalidoError):
        contar_envios_no_mes(rastreio_csv, mes)


@pytest.mark.parametrize(
    "mes,esperado",
    [("Outubro/2025", 2), ("Setembro/2025", 1), ("Novembro/2025", 0)],
)
def test_contar_envios_no_mes(rastreio_csv, mes, esperado):
    assert contar_envios_no_mes(rastreio_csv, mes) == esperado


def test_contar_envios_sem_coluna_de_data():
    assert contar_envios_no_mes(csv("Codigo;Valor", "A;1"), "Outubro/2025") == 0


def test_exportar_detalhes(tabela):
    detalhes = [
        detalhe("d1", "envio", ValorBruto(25.5)),
        detalhe("d2", "pick-01", Contagem(1), preco=5.6),
        detalhe("d3", "arm-pallet", Contagem(3), codigo="ARMAZENAGEM (Pallet)"),
    ]
    registros = parse_csv(exportar_detalhes_csv(detalhes, tabela))

    assert list(registros[0].keys()) == list(COLUNAS_EXPORTACAO_DETALHES)
    resumo = [(r["Pedido"], r["Quantidade"], r["Preço Unitário"], r["Subtotal"], r["Custo"]) for r in registros]
    assert resumo == [
        ("PED-1", "1", "25.50", "25.50", "25.50"),
        ("PED-1", "1", "5.60", "5.60", "2.00"),
        ("ARMAZENAGEM (Pallet)", "3", "60.00", "180.00", "150.00"),
    ]
    assert registros[2]["Categoria"] == "Armazenagem"
    assert registros[2]["Item"] == "Pallet"


def test_validar_multiplos_csvs():
    textos = [
        csv("Pedido;Custo", "PED-1;1", "PED-2;2"),
        csv("Pedido;Custo", "PED-1;3"),
        "",
        csv("Codigo;Valor", "X;1"),
    ]
    res = validar_multiplos_csvs(textos)
    assert not res.valido
    assert res.total_linhas == 4
    assert res.pedidos_duplicados == ["PED-1"]
    assert "Arquivo 3 está vazio ou inválido" in res.avisos
    assert "Arquivo 4: coluna de número do pedido não encontrada" in res.avisos


def test_validar_csvs_sem_duplicados():
    res = validar_multiplos_csvs([csv("Number,Total", "1001,10"), csv("Number,Total", "1002,20")])
    assert res.valido
    assert res.total_linhas == 2
    assert res.avisos == []
