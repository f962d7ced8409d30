import pytest

from faturamento.domain.models import Categoria, Contagem, DetalheEnvio, GrupoCusto, ValorBruto
from faturamento.domain.policies import (
    categoria_de,
    custo_detalhe,
    eh_custo_especifico,
    eh_picking_packing,
    eh_template,
    grupo_custo,
    preco_venda_exibicao,
    subtotal_detalhe,
)
from tests.fabrica import item


def _detalhe(quantidade, preco_unitario=None, custo_unitario=None, item_id="x"):
    return DetalheEnvio(
        id="d1",
        cobranca_id="c1",
        data="2025-10-15",
        rastreio="BR1",
        codigo_pedido="PED-1",
        tabela_preco_item_id=item_id,
        quantidade=quantidade,
        preco_unitario=preco_unitario,
        custo_unitario=custo_unitario,
    )


@pytest.mark.parametrize(
    "texto,esperado",
    [
        ("Envios", Categoria.ENVIOS),
        ("shipping", Categoria.ENVIOS),
        ("Retornos", Categoria.RETORNOS),
        ("Armazenamento", Categoria.ARMAZENAGEM),
        ("DIFAL", Categoria.DIFAL),
        ("Maquila/Entrada de material externo", Categoria.MAQUILA),
        ("Logistica", Categoria.LOGISTICA),
        ("Ajustes", Categoria.AJUSTES),
        ("Serviços gerais", Categoria.OUTRA),
        ("", Categoria.OUTRA),
        (None, Categoria.OUTRA),
    ],
)
def test_categoria_de(texto, esperado):
    assert categoria_de(texto) is esperado


def test_grupo_custo():
    assert grupo_custo("Retornos") is GrupoCusto.ENVIO
    assert grupo_custo("Armazenagem") is GrupoCusto.ARMAZENAGEM
    assert grupo_custo("Difal") is GrupoCusto.LOGISTICO


def test_eh_template():
    assert eh_template(item("a", "Logística", "Embalagem template", preco=1.0))
    assert eh_template(item("b", "Envios", "Sedex", preco=1.0))
    assert not eh_template(item("c", "Logística", "Embalagem", preco=1.0))
    assert not eh_template(item("d", "Envios", "Sedex template", custo=10.0, preco=10.0))
    assert not eh_template(None)


def test_eh_custo_especifico_e_picking():
    assert eh_custo_especifico("Custo DIFAL")
    assert eh_custo_especifico("Seguro da carga")
    assert not eh_custo_especifico("Etiquetagem")
    assert eh_picking_packing(item("p", "Logística", "Packing de presentes"))
    assert not eh_picking_packing(item("q", "Logística", "Etiquetagem"))


def test_preco_venda_exibicao():
    # preço recalculado a partir de custo e margem, não o armazenado
    assert preco_venda_exibicao(item("a", "Logística", "Etiqueta", custo=2.0, margem=50, preco=9.99)) == pytest.approx(3.0)
    # custo desconhecido: preço armazenado
    assert preco_venda_exibicao(item("b", "Logística", "Etiqueta", preco=4.5)) == 4.5
    # template de custo específico com custo: cobrado com margem
    assert preco_venda_exibicao(item("c", "Difal", "DIFAL template", custo=10.0, margem=10, preco=1.0)) == pytest.approx(11.0)
    # template comum: repasse
    assert preco_venda_exibicao(item("d", "Logística", "Embalagem template", custo=10.0, preco=1.0)) == 1.0


def test_subtotal_e_custo_valor_bruto():
    envio = item("x", "Envios", "Sedex", custo=20.0, preco=20.0)
    d = _detalhe(ValorBruto(25.5))
    assert subtotal_detalhe(d, envio) == 25.5
    assert custo_detalhe(d, envio) == 25.5


def test_subtotal_e_custo_contagem():
    etq = item("x", "Logística", "Etiqueta", custo=2.0, margem=50)
    d = _detalhe(Contagem(3))
    assert subtotal_detalhe(d, etq) == pytest.approx(9.0)
    assert custo_detalhe(d, etq) == pytest.approx(6.0)


def test_subtotal_com_preco_da_linha():
    etq = item("x", "Logística", "Etiqueta", custo=2.0, margem=50)
    d = _detalhe(Contagem(2), preco_unitario=5.0, custo_unitario=1.0)
    assert subtotal_detalhe(d, etq) == 10.0
    assert custo_detalhe(d, etq) == 2.0


def test_subtotal_sem_item():
    d = _detalhe(Contagem(2))
    assert subtotal_detalhe(d, None) == 0.0
    assert custo_detalhe(d, None) == 0.0
