import logging

from faturamento.infra import logger as flog


def test_setup_logger_reconfigura_handlers(tmp_path):
    arquivo = tmp_path / "sub" / "teste.log"
    lg = flog.setup_logger("faturamento.teste", str(arquivo))
    lg = flog.setup_logger("faturamento.teste", str(arquivo))
    assert len(lg.handlers) == 1
    assert not lg.propagate
    lg.warning("mensagem")
    assert "WARNING" in arquivo.read_text(encoding="utf-8")


def test_eventos_vao_para_arquivos_por_tipo():
    flog.log_system_event("evento_de_teste", {"id": "abc"})
    flog.log_transaction("operacao_teste", {"x": 1}, result={"ok": True})
    flog.log_transaction("operacao_teste", {"x": 1}, error="falhou")
    flog.log_valor_descartado("PED-1", "Custo de xyz", 3.0, "sem item")
    flog.log_conciliacao("teste", level="warning", pedidos=2)
    flog.log_tabela_operation("margem_teste", 3, categoria="Logística")

    assert "SYSTEM_EVENT: evento_de_teste" in flog.get_log_summary("system")
    transacoes = flog.get_log_summary("transactions")
    assert "TRANSACTION_SUCCESS: operacao_teste" in transacoes
    assert "TRANSACTION_FAILED: operacao_teste - falhou" in transacoes
    assert "VALOR_DESCARTADO" in flog.get_log_summary("precificacao")
    assert "CONCILIACAO_TESTE" in flog.get_log_summary("conciliacao")
    assert "TABELA_MARGEM_TESTE" in flog.get_log_summary("tabela")


def test_nivel_do_evento():
    flog.log_system_event("evento_alerta", level="warning")
    ultima = flog.get_log_summary("system", lines=1)
    assert " - WARNING - " in ultima
    assert flog.get_logger("system").level == logging.INFO


def test_resumo_limita_linhas():
    for i in range(5):
        flog.log_system_event(f"linha_{i}")
    resumo = flog.get_log_summary("system", lines=2)
    assert resumo.count("\n") == 2
    assert "linha_4" in resumo


def test_resumo_de_log_inexistente():
    assert flog.get_log_summary("inexistente") == "Log inexistente não encontrado."


def test_logging_desligado(monkeypatch):
    monkeypatch.setattr(flog, "ENABLE_LOGGING", False)
    monkeypatch.setattr(flog, "ENABLE_OUTPUT", False)
    antes = flog.get_log_summary("system", lines=10_000)
    flog.log_system_event("nao_deve_aparecer")
    assert flog.get_log_summary("system", lines=10_000) == antes
