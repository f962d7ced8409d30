import pytest

from faturamento.domain.matching import (
    REGRAS_ENVIO,
    casar_coluna,
    casar_coluna_com_regra,
    contexto_coluna,
    regras_para_coluna,
)
from tests.fabrica import item


def test_contexto_coluna_remove_stop_words():
    ctx = contexto_coluna("Custo de Envio Expresso")
    assert ctx.normalizada == "custo de envio expresso"
    assert ctx.palavras_chave == ("envio", "expresso")
    assert ctx.palavras_servico == ("expresso",)


def test_regras_de_envio_so_para_colunas_de_envio():
    assert regras_para_coluna("Custo de frete")[: len(REGRAS_ENVIO)] == REGRAS_ENVIO
    assert not set(regras_para_coluna("Custo de picking")) & set(REGRAS_ENVIO)


def test_envio_prefere_item_nao_template():
    tabela = [
        item("tpl", "Envios", "Custo de envio", preco=1.0),
        item("real", "Envios", "Sedex", custo=18.0, preco=18.0, subcategoria="Custo de envio"),
    ]
    encontrado, regra = casar_coluna_com_regra("Custo de envio", tabela)
    assert encontrado.id == "real"
    assert regra.nome == "subcategoria_exata"


def test_envio_por_palavra_chave():
    tabela = [
        item("pac", "Envios", "PAC", custo=10.0, preco=10.0),
        item("exp", "Envios", "Entrega expressa", custo=30.0, preco=30.0),
    ]
    assert casar_coluna("Custo de envio expressa", tabela).id == "exp"


def test_envio_cai_no_template_quando_nao_ha_item_real():
    tabela = [
        item("arm", "Armazenagem", "Pallet", custo=1.0, preco=1.5),
        item("tpl", "Envios", "Envio template", preco=1.0),
    ]
    encontrado, regra = casar_coluna_com_regra("Shipping cost", tabela)
    assert encontrado.id == "tpl"
    assert regra.fallback


def test_descricao_exata_e_substrings():
    tabela = [
        item("etq", "Logística", "Etiquetagem", custo=1.0, preco=1.2),
        item("emb", "Logística", "Embalagem", custo=2.0, preco=2.4),
    ]
    assert casar_coluna("embalagem", tabela).id == "emb"
    assert casar_coluna("Custo de etiquetagem", tabela).id == "etq"


def test_descricao_contem_coluna():
    tabela = [item("ret", "Retornos", "Logística reversa de devoluções", custo=5.0, preco=6.0)]
    assert casar_coluna("reversa", tabela).id == "ret"


def test_custo_especifico_prefere_nao_template():
    tabela = [
        item("difal-tpl", "Difal", "Repasse difal template", preco=1.0),
        item("difal", "Difal", "ICMS difal interestadual", custo=3.0, margem=10),
    ]
    encontrado, regra = casar_coluna_com_regra("Custo DIFAL", tabela)
    assert encontrado.id == "difal"
    assert regra.nome == "palavras_chave_nao_template"


def test_custo_especifico_aceita_template_como_ultimo_recurso():
    tabela = [item("difal-tpl", "Difal", "Repasse difal template", preco=1.0)]
    assert casar_coluna("Custo DIFAL", tabela).id == "difal-tpl"


def test_coluna_sem_correspondencia():
    tabela = [item("etq", "Logística", "Etiquetagem", custo=1.0, preco=1.2)]
    assert casar_coluna("Custo de xyz", tabela) is None


@pytest.mark.parametrize("coluna", ["", None])
def test_coluna_vazia(coluna):
    assert casar_coluna(coluna, [item("a", "Envios", "x")]) is None


def test_correspondencia_deterministica():
    tabela = [
        item("a", "Logística", "Seguro de carga", custo=2.0, margem=10),
        item("b", "Logística", "Seguro adicional", custo=3.0, margem=10),
    ]
    resultados = {casar_coluna("Custo de seguro", tabela).id for _ in range(5)}
    assert resultados == {"a"}
