import os
import tempfile

# logs dos testes fora do diretório do projeto (lido na importação do pacote)
os.environ.setdefault("FATURAMENTO_LOG_DIR", tempfile.mkdtemp(prefix="faturamento_logs_"))

import pytest

from faturamento.domain.models import Cliente
from tests.fabrica import item


@pytest.fixture
def tabela():
    return [
        item("envio", "Envios", "Custo de envio", custo=20.0, preco=20.0, subcategoria="Correios"),
        item("envio-tpl", "Envios", "Envio template", preco=1.0),
        item("picking", "Logística", "Picking de produtos", custo=2.0, margem=50, subcategoria="Picking"),
        item("pick-01", "Logística", "Pedidos contendo de 0.0 até 1.0 itens", custo=2.0, margem=50),
        item("pick-add", "Logística", "Pedidos contendo mais de 1.0 itens", custo=0.5, margem=60),
        item("embalagem-tpl", "Logística", "Embalagem especial template", preco=1.0),
        item("difal-tpl", "Difal", "DIFAL template", custo=10.0, margem=10, preco=1.0),
        item("arm-un", "Armazenagem", "Armazenagem por unidade", custo=0.10, margem=100),
        item("arm-pallet", "Armazenagem", "Pallet", custo=50.0, margem=20),
        item("entrada", "Maquila/Entrada de material externo", "Entrada de material por SKU", custo=1.0, margem=50),
        item("ajuste", "Ajustes", "Ajustes e Custos Adicionais", preco=1.0),
    ]


@pytest.fixture
def cliente():
    return Cliente(id="cli-1", nome="Loja Exemplo")


RASTREIO_CSV = "\n".join([
    "Pedido;Data;Rastreio",
    "PED-001;15/10/2025;BR001",
    "PED-002;16/10/2025;BR002",
    "PED-003;20/09/2025;BR003",
])

CUSTOS_CSV = "\n".join([
    "Pedido;Data;Custo de envio",
    "PED-001;15/10/2025;25,50",
    "PED-004;17/10/2025;10,00",
])


@pytest.fixture
def rastreio_csv():
    return RASTREIO_CSV


@pytest.fixture
def custos_csv():
    return CUSTOS_CSV
