# faturamento/usecases/precificacao.py
"""
UC: Precificar os pedidos conciliados.

Para cada pedido conciliado, cada coluna de custo com valor positivo é
resolvida para um item da tabela (`casar_coluna`) e vira uma linha da
fatura por exatamente uma das regras abaixo, nesta prioridade:

1. coluna posicional de custo total de envio -> ValorBruto(valor do CSV);
2. custo específico (DIFAL, seguro, ajuste) -> Contagem(1) ao preço
   custo x (1 + margem) do item, mesmo que o item seja template;
3. demais templates -> ValorBruto(valor do CSV), repasse a preço 1;
4. picking/packing -> faixa de 0 a 1 item, ou preço composto
   (picking base do CSV + itens adicionais) e linha separada de itens
   adicionais;
5. demais itens -> Contagem(1) ao preço de venda do item.

Depois da regra, colunas de DIFAL são redirecionadas a um item da categoria
Difal e itens sem categoria especializada a um item de Logística/Maquila,
preservando preço e custo já calculados. Linhas de DIFAL cobradas por
contagem respeitam o preço mínimo `preco_minimo_difal`. Por fim, a diferença
entre o Total do relatório de custos e o subtotal do pedido vira uma linha de
ajuste.

Linhas de armazenagem (unidades, posições, entrada de material) vêm do
cadastro do cliente e independem dos CSVs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from faturamento.adapters.colunas import EsquemaCustos, eh_pedido_digital
from faturamento.adapters.parsers import parse_valor
from faturamento.config import DEFAULTS, MODO_FALHAR, ConfigFaturamento
from faturamento.domain.erros import ColunasNaoMapeadasError, ColunaSemCorrespondenciaError
from faturamento.domain.formulas import preco_venda_por_margem
from faturamento.domain.matching import casar_coluna_com_regra
from faturamento.domain.models import (
    Categoria,
    Cliente,
    Contagem,
    DetalheEnvio,
    ItemPreco,
    PedidoConciliado,
    Quantidade,
    ValorBruto,
    ValorDescartado,
)
from faturamento.domain.policies import (
    PRECO_SENTINELA_TEMPLATE,
    categoria_de,
    eh_custo_especifico,
    eh_difal,
    eh_envio_nao_template,
    eh_picking_packing,
    eh_template,
    preco_com_margem,
    preco_venda_exibicao,
    subtotal_detalhe,
)
from faturamento.infra.logger import log_precificacao, log_system_event, log_valor_descartado

MOTIVO_SEM_ITEM = "coluna sem item correspondente na tabela de preços"
MOTIVO_SEM_ITEM_ENVIO = "nenhum item de envio na tabela de preços"
MOTIVO_SEM_AJUSTE = "discrepância sem item de ajuste configurado"

# Categorias que não são redirecionadas para Logística/Maquila
CATEGORIAS_ESPECIALIZADAS = frozenset({
    Categoria.ENVIOS, Categoria.RETORNOS, Categoria.ARMAZENAGEM, Categoria.DIFAL,
    Categoria.LOGISTICA, Categoria.MAQUILA, Categoria.AJUSTES,
})


# ---------------------------
# itens especiais da tabela
# ---------------------------

def _desc(item: ItemPreco) -> str:
    return (item.descricao or "").lower()


def eh_item_picking_0_1(item: ItemPreco) -> bool:
    d = _desc(item)
    return (
        "pedidos contendo de 0.0 até 1.0 itens" in d
        or "pedidos contendo de 0 até 1" in d
        or "0.0 até 1.0 itens" in d
        or ("até 1.0" in d and "itens" in d)
    )


def eh_item_adicional(item: ItemPreco) -> bool:
    d = _desc(item)
    return (
        "pedidos contendo mais de" in d
        or "mais de 1.0 itens" in d
        or "item adicional" in d
        or ("mais de" in d and "item" in d)
    )


def eh_item_ajuste(item: ItemPreco) -> bool:
    """Item de repasse (preço 1) para ajustes e custos adicionais."""
    d = _desc(item)
    return ("ajuste" in d or "custos adicionais" in d) and abs(
        float(item.preco_venda or 0.0) - PRECO_SENTINELA_TEMPLATE
    ) <= 1e-9


def _primeiro(tabela: Iterable[ItemPreco], cond) -> Optional[ItemPreco]:
    return next((i for i in tabela if cond(i)), None)


@dataclass(frozen=True)
class ItensEspeciais:
    envio: Optional[ItemPreco] = None
    picking_0_1: Optional[ItemPreco] = None
    item_adicional: Optional[ItemPreco] = None
    ajuste: Optional[ItemPreco] = None
    difal: Optional[ItemPreco] = None
    logistica: Optional[ItemPreco] = None


def localizar_itens_especiais(tabela: Sequence[ItemPreco], coluna_envio: Optional[str]) -> ItensEspeciais:
    envio = None
    if coluna_envio:
        casado, _ = casar_coluna_com_regra(coluna_envio, tabela)
        # a coluna vem pela letra e o nome pode casar com qualquer categoria
        envio = casado if casado and eh_envio_nao_template(casado) else None
        envio = envio or _primeiro(tabela, eh_envio_nao_template) or _primeiro(
            tabela, lambda i: categoria_de(i.categoria) is Categoria.ENVIOS
        )
    return ItensEspeciais(
        envio=envio,
        picking_0_1=_primeiro(tabela, eh_item_picking_0_1),
        item_adicional=_primeiro(tabela, eh_item_adicional),
        ajuste=_primeiro(tabela, eh_item_ajuste),
        difal=_primeiro(
            tabela,
            lambda i: categoria_de(i.categoria) is Categoria.DIFAL
            and ("difal" in _desc(i) or "icms" in _desc(i)),
        ),
        logistica=_primeiro(
            tabela, lambda i: categoria_de(i.categoria) in (Categoria.MAQUILA, Categoria.LOGISTICA)
        ),
    )


def _slug_coluna(coluna: str) -> str:
    return re.sub(r"\s+", "_", coluna.strip())


# ---------------------------
# motor
# ---------------------------

@dataclass
class ResultadoPrecificacao:
    detalhes: List[DetalheEnvio] = field(default_factory=list)
    valores_descartados: List[ValorDescartado] = field(default_factory=list)
    pedidos_digitais: List[str] = field(default_factory=list)
    avisos: List[str] = field(default_factory=list)


class MotorPrecificacao:
    """Aplica as regras de precificação a pedidos conciliados.

    O mapeamento coluna -> item é resolvido uma vez na construção; a tabela
    de preços é tratada como somente leitura.
    """

    def __init__(
        self,
        tabela: Sequence[ItemPreco],
        esquema: EsquemaCustos,
        config: ConfigFaturamento = DEFAULTS,
        cobranca_id: str = "",
    ):
        self.tabela = list(tabela)
        self.indice = {i.id: i for i in self.tabela}
        self.esquema = esquema
        self.config = config
        self.cobranca_id = cobranca_id
        self.itens = localizar_itens_especiais(self.tabela, esquema.posicionais.envio)

        self.mapa_colunas: Dict[str, Optional[ItemPreco]] = {}
        self.colunas_sem_item: List[str] = []
        for coluna in esquema.colunas_custo:
            item, regra = casar_coluna_com_regra(coluna, self.tabela)
            self.mapa_colunas[coluna] = item
            if item is None:
                self.colunas_sem_item.append(coluna)
                log_system_event("coluna_sem_item", {"coluna": coluna}, level="warning")
            else:
                log_system_event(
                    "coluna_mapeada",
                    {"coluna": coluna, "item": item.id, "descricao": item.descricao, "regra": regra.nome,
                     "fallback": regra.fallback},
                )
        self._verificar_limite_sem_correspondencia()

    def _verificar_limite_sem_correspondencia(self) -> None:
        limite = self.config.limite_colunas_sem_correspondencia
        total = len(self.esquema.colunas_custo)
        if limite is None or not total or not self.colunas_sem_item:
            return
        proporcao = len(self.colunas_sem_item) / total
        if proporcao > limite:
            raise ColunasNaoMapeadasError(self.colunas_sem_item, proporcao * 100)

    # -- helpers de linha --

    def _novo_detalhe(
        self,
        id_: str,
        pedido: PedidoConciliado,
        item: ItemPreco,
        quantidade: Quantidade,
        preco_unitario: Optional[float] = None,
        custo_unitario: Optional[float] = None,
    ) -> DetalheEnvio:
        linha = pedido.linha_custo
        p = self.esquema.posicionais
        cep = (linha.get(p.cep) or "").strip() if p.cep else ""
        estado = (linha.get(p.estado) or "").strip().upper() if p.estado else ""
        return DetalheEnvio(
            id=id_,
            cobranca_id=self.cobranca_id,
            data=pedido.data.isoformat() if pedido.data else "",
            rastreio=pedido.rastreio or pedido.codigo_pedido,
            codigo_pedido=pedido.codigo_pedido,
            tabela_preco_item_id=item.id,
            quantidade=quantidade,
            cep=cep or None,
            estado=estado or None,
            preco_unitario=preco_unitario,
            custo_unitario=custo_unitario,
        )

    def _descartar(self, descartados: List[ValorDescartado], pedido: str, origem: str, valor: float, motivo: str) -> None:
        descartados.append(ValorDescartado(codigo_pedido=pedido, origem=origem, valor=valor, motivo=motivo))
        log_valor_descartado(pedido, origem, valor, motivo)

    def _preco_especifico(self, item: ItemPreco, valor_csv: float) -> Tuple[float, Optional[float]]:
        """(preço unitário, custo unitário) de DIFAL/seguro/ajuste."""
        if item.custo_unitario > 0:
            return preco_com_margem(item), None
        if eh_template(item):
            # template sem custo cadastrado: o valor do CSV é o custo
            return preco_venda_por_margem(valor_csv, item.margem_lucro), valor_csv
        return preco_venda_exibicao(item), None

    def _quantidade_itens(self, linha: Dict[str, str]) -> Optional[float]:
        col = self.esquema.posicionais.itens
        if not col:
            return None
        return parse_valor(linha.get(col))

    def _linhas_picking(
        self, pedido: PedidoConciliado, coluna: str, item: ItemPreco
    ) -> List[Tuple[ItemPreco, Quantidade, Optional[float]]]:
        """Linhas (item, quantidade, preço unitário) de picking/packing."""
        p = self.esquema.posicionais
        linha = pedido.linha_custo
        n = self._quantidade_itens(linha)
        adicional = self.itens.item_adicional

        if p.itens and p.picking:
            base = self.itens.picking_0_1 or item
            if n is None or n <= 1:
                return [(base, Contagem(1), None)]
            extras = n - 1
            preco_extra = preco_venda_exibicao(adicional) if adicional else 0.0
            preco = parse_valor(linha.get(p.picking)) + preco_extra * extras
            linhas = [(base, Contagem(1), preco)]
            if adicional:
                linhas.append((adicional, Contagem(extras), None))
            log_precificacao(
                "picking_composto", pedido.codigo_pedido, itens=n, preco_picking=preco, preco_item_adicional=preco_extra
            )
            return linhas

        # sem coluna de itens ou de picking base: preço padrão do item casado
        quantidade = n if n and n > 0 else 1
        linhas = [(item, Contagem(quantidade), None)]
        if n is not None and n >= 2 and adicional:
            linhas.append((adicional, Contagem(n - 1), None))
        log_precificacao("picking_sem_colunas", pedido.codigo_pedido, coluna=coluna, itens=n)
        return linhas

    def _redirecionar(self, coluna: str, item: ItemPreco) -> ItemPreco:
        categoria = categoria_de(item.categoria)
        if "difal" in coluna.lower():
            if categoria is not Categoria.DIFAL and self.itens.difal:
                return self.itens.difal
            return item
        if categoria not in CATEGORIAS_ESPECIALIZADAS and self.itens.logistica:
            return self.itens.logistica
        return item

    # -- pedido --

    def precificar_pedido(self, pedido: PedidoConciliado) -> Tuple[List[DetalheEnvio], List[ValorDescartado]]:
        codigo = pedido.codigo_pedido
        linha = pedido.linha_custo
        detalhes: List[DetalheEnvio] = []
        descartados: List[ValorDescartado] = []

        # 1. custo total de envio
        col_envio = self.esquema.posicionais.envio
        if col_envio:
            valor = parse_valor(linha.get(col_envio))
            if valor > 0:
                if self.itens.envio:
                    detalhes.append(
                        self._novo_detalhe(f"draft_{codigo}_envio", pedido, self.itens.envio, ValorBruto(valor))
                    )
                else:
                    self._descartar(descartados, codigo, col_envio, valor, MOTIVO_SEM_ITEM_ENVIO)

        # 2-6. demais colunas de custo
        cobrados = set()
        difal_cobrado = False
        for coluna in self.esquema.colunas_custo:
            valor = parse_valor(linha.get(coluna))
            if valor <= 0:
                continue
            item = self.mapa_colunas.get(coluna)
            if item is None:
                if self.config.modo_sem_correspondencia == MODO_FALHAR:
                    raise ColunaSemCorrespondenciaError(codigo, coluna, valor)
                self._descartar(descartados, codigo, coluna, valor, MOTIVO_SEM_ITEM)
                continue

            eh_coluna_difal = "difal" in coluna.lower()
            if eh_coluna_difal and difal_cobrado:
                log_precificacao("difal_duplicado", codigo, coluna=coluna)
                continue

            custo_fixo: Optional[float] = None
            if eh_custo_especifico(coluna) or eh_custo_especifico(item.descricao):
                preco, custo_fixo = self._preco_especifico(item, valor)
                linhas = [(item, Contagem(1), preco)]
                regra = "custo_especifico"
            elif eh_template(item):
                linhas = [(item, ValorBruto(valor), None)]
                regra = "template_repasse"
            elif eh_picking_packing(item):
                linhas = self._linhas_picking(pedido, coluna, item)
                regra = "picking"
            else:
                linhas = [(item, Contagem(1), None)]
                regra = "padrao"

            principal, quantidade, preco = linhas[0]
            # dedup pelo item casado, antes do redirecionamento
            chave = (principal.id, principal.categoria)
            if chave in cobrados and not eh_coluna_difal:
                log_precificacao("custo_duplicado", codigo, coluna=coluna, item=principal.id)
                continue
            cobrados.add(chave)

            if regra != "picking":
                destino = self._redirecionar(coluna, principal)
                if destino is not principal:
                    # o item destino só muda a categorização; preço e custo seguem o item casado
                    if isinstance(quantidade, Contagem):
                        if preco is None:
                            preco = preco_venda_exibicao(principal)
                        if custo_fixo is None:
                            custo_fixo = principal.custo_unitario
                    log_precificacao("redirecionado", codigo, coluna=coluna, de=principal.id, para=destino.id)
                    principal = destino

            if eh_coluna_difal or eh_difal(principal):
                if isinstance(quantidade, Contagem):
                    base = preco if preco is not None else preco_venda_exibicao(principal)
                    preco = max(base, self.config.preco_minimo_difal)
                difal_cobrado = difal_cobrado or eh_coluna_difal

            slug = _slug_coluna(coluna)
            detalhes.append(
                self._novo_detalhe(
                    f"draft_{codigo}_{principal.id}_{slug}", pedido, principal, quantidade, preco, custo_fixo
                )
            )
            for extra_item, extra_qtd, extra_preco in linhas[1:]:
                detalhes.append(
                    self._novo_detalhe(
                        f"draft_{codigo}_item_adicional_{slug}", pedido, extra_item, extra_qtd, extra_preco
                    )
                )
            log_precificacao("linha", codigo, coluna=coluna, regra=regra, item=principal.id, valor_csv=valor)

        # 7. discrepância contra o Total do relatório de custos
        col_total = self.esquema.coluna_total
        if col_total:
            total = parse_valor(linha.get(col_total))
            subtotal = sum(subtotal_detalhe(d, self.indice.get(d.tabela_preco_item_id)) for d in detalhes)
            discrepancia = total - subtotal
            if discrepancia > self.config.tolerancia_discrepancia:
                if self.itens.ajuste:
                    detalhes.append(
                        self._novo_detalhe(f"draft_{codigo}_ajuste", pedido, self.itens.ajuste, ValorBruto(discrepancia))
                    )
                    log_precificacao("ajuste", codigo, total=total, subtotal=subtotal, discrepancia=discrepancia)
                else:
                    self._descartar(descartados, codigo, "discrepancia", discrepancia, MOTIVO_SEM_AJUSTE)

        return detalhes, descartados

    def precificar(self, pedidos: Iterable[PedidoConciliado]) -> ResultadoPrecificacao:
        resultado = ResultadoPrecificacao()
        for pedido in pedidos:
            if self.config.ignorar_pedidos_digitais and eh_pedido_digital(pedido.linha_custo):
                resultado.pedidos_digitais.append(pedido.codigo_pedido)
                log_precificacao("pedido_digital_ignorado", pedido.codigo_pedido)
                continue
            detalhes, descartados = self.precificar_pedido(pedido)
            resultado.detalhes.extend(detalhes)
            resultado.valores_descartados.extend(descartados)

        if self.colunas_sem_item:
            resultado.avisos.append(
                f"{len(self.colunas_sem_item)} coluna(s) de custo sem item na tabela de preços: "
                + ", ".join(self.colunas_sem_item)
            )
        if not self.itens.ajuste:
            resultado.avisos.append(
                "Item de 'Ajustes e Custos Adicionais' com preço R$ 1,00 não encontrado; discrepâncias não serão faturadas."
            )
        if resultado.pedidos_digitais:
            resultado.avisos.append(
                f"{len(resultado.pedidos_digitais)} pedido(s) digital(is) ignorado(s) - não passam pela logística"
            )
        return resultado


# ---------------------------
# armazenagem
# ---------------------------

# (chave em Cliente.posicoes, palavras na descrição do item, rótulo)
MAPA_POSICOES: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("longarina", ("longarina",), "Longarina"),
    ("prateleira", ("prateleira",), "Prateleira"),
    ("prateleira_m", ("prateleira m",), "Prateleira M"),
    ("prateleira_p", ("prateleira p",), "Prateleira P"),
    ("pallet", ("pallet",), "Pallet"),
    ("cesto", ("cesto",), "Cesto"),
    ("caixa_bin", ("caixa bin",), "Caixa Bin"),
    ("mini_caixote", ("mini caixote",), "Mini Caixote"),
    ("damaged", ("damaged",), "Damaged"),
    ("picking_standard", ("picking standard",), "Picking Standard"),
    ("porta_pallet", ("porta pallet",), "Porta Pallet"),
)

PALAVRAS_ARMAZENAGEM_UNIDADE = (("unidade",), ("peça",), ("sku",))


def buscar_item_armazenagem(itens: Sequence[ItemPreco], palavras: Sequence[str]) -> Optional[ItemPreco]:
    """Item cuja descrição contém todas as palavras; prefere o exato, depois o mais curto."""
    palavras = [p.lower() for p in palavras]
    candidatos = [i for i in itens if all(p in _desc(i) for p in palavras)]
    if not candidatos:
        return None
    return sorted(candidatos, key=lambda i: (_desc(i) not in palavras, len(_desc(i))))[0]


def linhas_armazenagem(
    cliente: Cliente,
    tabela: Sequence[ItemPreco],
    data_inicio: str,
    cobranca_id: str = "",
) -> Tuple[List[DetalheEnvio], List[str]]:
    """Linhas de armazenagem e entrada de material a partir do cadastro do cliente.

    Returns:
        (detalhes, avisos)
    """
    armazenagem = [i for i in tabela if categoria_de(i.categoria) is Categoria.ARMAZENAGEM]
    maquila = [i for i in tabela if categoria_de(i.categoria) is Categoria.MAQUILA]
    detalhes: List[DetalheEnvio] = []
    avisos: List[str] = []

    def _linha(id_: str, codigo: str, rastreio: str, item: ItemPreco, quantidade: float) -> DetalheEnvio:
        return DetalheEnvio(
            id=id_,
            cobranca_id=cobranca_id,
            data=data_inicio,
            rastreio=rastreio,
            codigo_pedido=codigo,
            tabela_preco_item_id=item.id,
            quantidade=Contagem(quantidade),
        )

    if cliente.unidades_em_estoque and cliente.unidades_em_estoque > 0:
        item = None
        for palavras in PALAVRAS_ARMAZENAGEM_UNIDADE:
            item = buscar_item_armazenagem(armazenagem, palavras)
            if item:
                break
        item = item or (armazenagem[0] if armazenagem else None)
        if item:
            detalhes.append(_linha(
                f"draft_armazenagem_unidades_{cliente.id}", "ARMAZENAGEM (Unidades)", "ARMAZENAGEM",
                item, cliente.unidades_em_estoque,
            ))
        else:
            avisos.append("Cliente com unidades em estoque, mas nenhum item de Armazenagem na tabela de preços.")

    for chave, palavras, rotulo in MAPA_POSICOES:
        quantidade = (cliente.posicoes or {}).get(chave) or 0
        if quantidade <= 0:
            continue
        item = buscar_item_armazenagem(armazenagem, palavras)
        if item:
            detalhes.append(_linha(
                f"draft_armazenagem_{chave}_{cliente.id}", f"ARMAZENAGEM ({rotulo})", "ARMAZENAGEM",
                item, quantidade,
            ))
        else:
            avisos.append(f"Item de preço para \"{rotulo}\" não encontrado na categoria Armazenagem.")

    if cliente.skus_entrada_material and cliente.skus_entrada_material > 0:
        item = _primeiro(maquila + armazenagem, lambda i: "entrada" in _desc(i) and "material" in _desc(i))
        if item:
            detalhes.append(_linha(
                f"draft_entrada_material_{cliente.id}", "ENTRADA DE MATERIAL", "LOGÍSTICA",
                item, cliente.skus_entrada_material,
            ))
        else:
            avisos.append("Item de entrada de material não encontrado na tabela de preços.")

    return detalhes, avisos
