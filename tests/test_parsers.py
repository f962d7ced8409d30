from datetime import date

import pytest

from faturamento.adapters.parsers import (
    combinar_csvs,
    encontrar_coluna,
    letra_para_indice,
    coluna_por_letra,
    parse_csv,
    parse_data,
    parse_valor,
    sanitizar,
    stringify_csv,
)


def test_parse_csv_ignora_titulo_e_bom():
    texto = "\ufeffRelatório de custos - Outubro\r\nPedido;Total\r\n\r\n\"PED-1\";\"10,5\"\r\n"
    assert parse_csv(texto) == [{"Pedido": "PED-1", "Total": "10,5"}]


def test_parse_csv_delimitador_entre_aspas():
    texto = 'Pedido,Descricao,Valor\nPED-1,"Caixa, grande",2'
    registros = parse_csv(texto)
    assert registros[0]["Descricao"] == "Caixa, grande"
    assert registros[0]["Valor"] == "2"


def test_parse_csv_prefere_ponto_e_virgula_quando_mais_frequente():
    texto = "Pedido;Valor;Obs\nPED-1;1,50;a"
    assert parse_csv(texto) == [{"Pedido": "PED-1", "Valor": "1,50", "Obs": "a"}]


def test_parse_csv_linha_curta_completada():
    registros = parse_csv("a;b;c\n1;2")
    assert registros == [{"a": "1", "b": "2", "c": ""}]


def test_parse_csv_sanitiza_valores():
    registros = parse_csv("a;b\n  x    y \t;2")
    assert registros[0]["a"] == "x y"


@pytest.mark.parametrize("texto", ["", "   ", "sem delimitador\noutra linha"])
def test_parse_csv_sem_cabecalho(texto):
    assert parse_csv(texto) == []


def test_sanitizar_remove_controle():
    assert sanitizar("ab\x00c\x07 ") == "abc"
    assert sanitizar(None) == ""


def test_encontrar_coluna_ordem_de_tentativas():
    colunas = ["Data do envio (UTC)", "Número do Pedido", "pedido"]
    # exato vence
    assert encontrar_coluna(colunas, ["pedido", "Número do Pedido"]) == "pedido"
    # sem diferenciar maiúsculas
    assert encontrar_coluna(colunas, ["NÚMERO DO PEDIDO"]) == "Número do Pedido"
    # substring
    assert encontrar_coluna(colunas, ["Data do envio"]) == "Data do envio (UTC)"
    assert encontrar_coluna(colunas, ["Data do envio"], parcial=False) is None


def test_encontrar_coluna_aceita_registros():
    registros = [{"Pedido": "1", "Data": "x"}]
    assert encontrar_coluna(registros, ["data"]) == "Data"
    assert encontrar_coluna([], ["data"]) is None


@pytest.mark.parametrize(
    "letra,indice",
    [("A", 0), ("e", 4), ("M", 12), ("Z", 25), ("AA", 26), ("AD", 29)],
)
def test_letra_para_indice(letra, indice):
    assert letra_para_indice(letra) == indice


@pytest.mark.parametrize("letra", ["", "1", "A1"])
def test_letra_para_indice_invalida(letra):
    with pytest.raises(ValueError):
        letra_para_indice(letra)


def test_coluna_por_letra_fora_do_intervalo():
    assert coluna_por_letra(["a", "b"], "B") == "b"
    assert coluna_por_letra(["a", "b"], "AD") is None


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("R$ 1.234,56", 1234.56),
        ("25.50", 25.5),
        ("25,50", 25.5),
        ("-3,2", -3.2),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        ("20%", 20.0),
    ],
)
def test_parse_valor(txt, esperado):
    assert parse_valor(txt) == pytest.approx(esperado)


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("15/10/2025", date(2025, 10, 15)),
        ("03/04/2025", date(2025, 4, 3)),
        ("15/10/2025 14:30", date(2025, 10, 15)),
        ("2025-10-15T10:00:00Z", date(2025, 10, 15)),
        ("15-10-2025", date(2025, 10, 15)),
        ("", None),
        (None, None),
    ],
)
def test_parse_data(txt, esperado):
    assert parse_data(txt) == esperado


def test_stringify_csv_reaspa_e_volta_pelo_parser():
    registros = [{"Pedido": "PED-1", "Obs": 'caixa "frágil", lacrada'}]
    texto = stringify_csv(registros)
    assert texto.splitlines()[0] == "Pedido,Obs"
    assert texto.splitlines()[1] == '"PED-1","caixa ""frágil"", lacrada"'
    assert parse_csv(texto) == registros


def test_stringify_csv_vazio():
    assert stringify_csv([]) == ""


def test_combinar_csvs_usa_cabecalho_do_primeiro():
    a = "Pedido;Total\nPED-1;10"
    b = "Total;Pedido;Extra\n20;PED-2;x"
    combinados = combinar_csvs([a, "", b])
    assert combinados == [
        {"Pedido": "PED-1", "Total": "10"},
        {"Pedido": "PED-2", "Total": "20"},
    ]
