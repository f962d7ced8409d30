import math

import pytest

from faturamento.domain.erros import CategoriaSemItensError, MargemInvalidaError
from faturamento.usecases.tabela_precos import (
    atualizar_margem_categoria,
    atualizar_margem_templates,
    editar_custo,
    editar_margem,
    editar_preco_venda,
)
from tests.fabrica import item


def test_editar_custo_recalcula_preco():
    novo = editar_custo(item("a", "Logística", "Etiqueta", custo=2.0, margem=50), 4.0)
    assert novo.custo_unitario == 4.0
    assert novo.preco_venda == pytest.approx(6.0)


def test_editar_margem_recalcula_preco():
    original = item("a", "Logística", "Etiqueta", custo=2.0, margem=50)
    novo = editar_margem(original, 100)
    assert novo.preco_venda == pytest.approx(4.0)
    # o item original não muda
    assert original.margem_lucro == 50


def test_editar_preco_recalcula_margem():
    novo = editar_preco_venda(item("a", "Logística", "Etiqueta", custo=2.0, margem=50), 5.0)
    assert novo.preco_venda == 5.0
    assert novo.margem_lucro == pytest.approx(150.0)


def test_editar_preco_sem_custo_zera_margem():
    novo = editar_preco_venda(item("a", "Logística", "Etiqueta", preco=3.0, margem=10), 5.0)
    assert novo.margem_lucro == 0.0


def test_template_mantem_preco_sentinela():
    tpl = item("t", "Logística", "Embalagem template", preco=1.0)
    assert editar_custo(tpl, 10.0).preco_venda == 1.0
    assert editar_margem(tpl, 30).preco_venda == 1.0


def test_margem_por_categoria(tabela):
    nova, alterados = atualizar_margem_categoria(tabela, "logística", 100)
    assert alterados == 4
    por_id = {i.id: i for i in nova}
    assert por_id["picking"].margem_lucro == 100
    assert por_id["picking"].preco_venda == pytest.approx(4.0)
    assert por_id["pick-add"].preco_venda == pytest.approx(1.0)
    assert por_id["embalagem-tpl"].preco_venda == 1.0
    # outras categorias intactas
    assert por_id["envio"] is tabela[0]
    # a tabela recebida não é modificada
    assert next(i for i in tabela if i.id == "picking").margem_lucro == 50


def test_margem_por_categoria_inexistente(tabela):
    with pytest.raises(CategoriaSemItensError) as exc:
        atualizar_margem_categoria(tabela, "Inexistente", 10)
    assert exc.value.code == "CATEGORIA_SEM_ITENS"


@pytest.mark.parametrize("margem", [-1, "10", None, True, math.nan])
def test_margem_invalida(tabela, margem):
    with pytest.raises(MargemInvalidaError):
        atualizar_margem_categoria(tabela, "Logística", margem)
    with pytest.raises(MargemInvalidaError):
        atualizar_margem_templates(tabela, margem)


def test_margem_zero_e_valida(tabela):
    nova, alterados = atualizar_margem_categoria(tabela, "Armazenagem", 0)
    assert alterados == 2
    assert {i.id: i.preco_venda for i in nova}["arm-pallet"] == pytest.approx(50.0)


def test_margem_dos_templates(tabela):
    nova, alterados = atualizar_margem_templates(tabela, 25)
    assert alterados == 3
    templates = [i for i in nova if i.margem_lucro == 25]
    assert {i.id for i in templates} == {"envio-tpl", "embalagem-tpl", "difal-tpl"}
    assert all(i.preco_venda == 1.0 for i in templates)
    assert len(nova) == len(tabela)
