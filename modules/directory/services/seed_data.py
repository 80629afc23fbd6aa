"""
Default directory dataset.

Employee rosters per regional office (the first person of each roster is the
office chief), one municipality per regional seat, and the regional office
contact cards.
"""

from typing import Dict, List, NamedTuple, Optional, Tuple

CHIEF_ROLE = "Chefe"


class RegionalSeed(NamedTuple):
    name: str
    chief: str
    extension: str
    address: str


# Region label -> roster. (name, role); role None means no designation.
EMPLOYEE_ROSTERS: Dict[str, List[Tuple[str, Optional[str]]]] = {
    "Curitiba": [
        ("Cíntia Aparecida de Lima", CHIEF_ROLE),
        ("Amauri Romão da Silva", None),
        ("Camila Castanha", None),
        ("Luiz Carlos Geremias Junior", None),
        ("Zenon Silvério Neto", None),
        ("Hugo Demay Hoecklerner", None),
        ("Ricardo Barreira", None),
        ("Luís César Moro", None),
        ("Tatiane Macedo Motta", None),
        ("Andréia Pichonelli", None),
        ("Mayra Camila Wrobel dos Santos", None),
        ("Matheus Braschi Haliski", None),
    ],
    "Ponta Grossa": [
        ("João Alfredo Thomé", CHIEF_ROLE),
        ("Alexandre Vieira", None),
        ("Francine Barganha Machado Tullio", None),
        ("Henriette Gomes", None),
        ("Douglas Wellington Gouvea Junior", None),
        ("Jessica Eliane Vaz Pereira", None),
    ],
    "Uniao da Vitoria": [
        ("Nelson Ronaldo Pedroso", CHIEF_ROLE),
        ("Ana Caroline Kreckinski", None),
        ("Vinícius Alexandre Tomio da Motta", None),
    ],
    "Londrina": [
        ("Fábio Bali Oliveira", CHIEF_ROLE),
        ("Flávia Roberta Roque de Lima Reis", None),
        ("Marcel S. Cichocki de Baravi Vasconcellos", None),
        ("Marlo Eduardo Roncaglio", None),
        ("Ana Letícia Craco", None),
        ("Giovana Sticca de Souza", None),
        ("Eduardo Grzeszeski de Carvalho", None),
    ],
    "Santo Antonio da Platina": [
        ("João Vítor de Oliveira Navarro", CHIEF_ROLE),
        ("Jonas Ribeiro", None),
        ("Gabriel Barbosa Joanitis", None),
        ("Izabelle Leal de Godoi", None),
        ("João Afonso Silva Peixe Cavenaghi", None),
    ],
    "Cascavel": [
        ("Ricardo Ceola", CHIEF_ROLE),
        ("Leandro Sandalo Piana", None),
        ("Pedro Antonio Perin Ribas", None),
        ("Renan Calvo", None),
        ("Nicole Santos da Silva", None),
        ("Stefani Triper Gonçalves", None),
        ("Flávia Cristina de Azevedo Pinto Knupp", None),
    ],
    "Maringa": [
        ("Gustavo Vidor Godoi", CHIEF_ROLE),
        ("Enzo Bernardes Rizzo", None),
        ("Isabel Campos Barros", None),
        ("Marcos Antonio Franco", None),
        ("Rômulo Menck Romanichen", None),
        ("Suely Xavier Lisboa", None),
        ("Edilen Henrique Xavier", None),
        ("Glória Fort", None),
        ("Guilherme Henrique Montagnini", None),
        ("Tatiana de Farias Alves", None),
    ],
    "Pato Branco": [
        ("Joceandro Tonial", CHIEF_ROLE),
        ("Érico Hiyoshi Iwata", None),
        ("Caroline Martins Lima", None),
        ("Agada Costa Rosaneli", None),
        ("Adriele Moretto", None),
    ],
    "Campo Mourao": [
        ("Fernando Cavali Almeida", CHIEF_ROLE),
        ("Juliano Tezolin", None),
        ("Lucas Felipe Garippo Peixoto", None),
        ("Rodrigo Gonçalves Ferreira da Silva", None),
        ("Aniele Carolline Arantes Silva", None),
        ("Victor Hugo Schroder", None),
        ("Edel Idilio Rocha", None),
    ],
    "Guarapuava": [
        ("José Luiz Cieslack", CHIEF_ROLE),
        ("Melissa Robertha Cuco de Almeida", None),
        ("Gabriel Menon de Lima", None),
        ("Ariel Rodrigues de Lima", None),
        ("Flavio Augusto Prado", None),
        ("Alison Diego Buava", None),
        ("Gabriela Haag Coelho", None),
    ],
    "Umuarama": [
        ("Vivianne Mendes Lowe", CHIEF_ROLE),
        ("Fernando Nicolau Tolentino", None),
        ("Ana Luiza Oliveira Santos", None),
        ("Marcelo Junior Ferreira Almansa", None),
    ],
}

# (municipality name, region label)
MUNICIPALITIES: List[Tuple[str, str]] = [
    ("Curitiba", "Curitiba"),
    ("Ponta Grossa", "Ponta Grossa"),
    ("União da Vitória", "Uniao da Vitoria"),
    ("Londrina", "Londrina"),
    ("Santo Antônio da Platina", "Santo Antonio da Platina"),
    ("Cascavel", "Cascavel"),
    ("Maringá", "Maringa"),
    ("Pato Branco", "Pato Branco"),
    ("Campo Mourão", "Campo Mourao"),
    ("Guarapuava", "Guarapuava"),
    ("Umuarama", "Umuarama"),
]

REGIONAL_OFFICES: List[RegionalSeed] = [
    RegionalSeed(
        "Curitiba",
        "ENG. CIVIL CINTHIA APARECIDA DE LIMA",
        "41 3210-2938",
        "Rua Jacy Loureiro de Campos, nº 6, 2º andar, Praça Nossa Senhora de Santa Salete "
        "– Palácio das Araucárias, CEP 82590-300 – Curitiba-PR",
    ),
    RegionalSeed(
        "Ponta Grossa",
        "ENG. CIVIL JOAO ALFREDO THOME",
        "42 99144-7400",
        "Rua José do Patrocínio, 238B – CEP 84040-200, Ponta Grossa-PR",
    ),
    RegionalSeed(
        "União da Vitória",
        "ADV. NELSON RONALDO PEDROSO",
        "42 99955-8564",
        "Avenida Bento Munhoz da Rocha Neto 1251, Bairro São Bernardo do Campo "
        "– CEP 84600-348, União da Vitória-PR",
    ),
    RegionalSeed(
        "Londrina",
        "ENG. CIVIL FABIO BAHL OLIVEIRA",
        "(41) 98846-2339",
        "Rua Cambará, 207 – CEP 86010-530, Londrina-PR",
    ),
    RegionalSeed(
        "Santo Antônio da Platina",
        "ENG. CIVIL JOÃO VITOR DE OLIVEIRA NABARRO",
        "41 98846-2696",
        "Rua Marechal Deodoro da Fonseca, 185 – Centro, CEP 86430-000 "
        "– Santo Antônio da Platina-PR",
    ),
    RegionalSeed(
        "Cascavel",
        "ARQUITETO RICARDO CEOLA",
        "45 3223-2081",
        "Rua Antonina, 2406 – Centro – CEP 85812-040, Cascavel-PR",
    ),
    RegionalSeed(
        "Maringá",
        "ENG. CIVIL GUSTAVO VIDOR GODOI",
        "44 99948-5647",
        "Avenida Humaitá 268 – Zona 4 – CEP 87014-200, Maringá-PR",
    ),
    RegionalSeed(
        "Pato Branco",
        "ENG. CIVIL JOCEANDRO TONIAL",
        "46 3220-7220",
        "Rua Sete de Setembro, 363 – CEP 85506-040, Pato Branco-PR",
    ),
    RegionalSeed(
        "Campo Mourão",
        "ENG. CIVIL FERNANDO CAVALI ALMEIDA",
        "44 99846-7698",
        "Avenida Capitão Índio Bandeira, 920, 2º andar, Prédio da PGE (anexo à Agência "
        "de Rendas) – Centro, CEP 87300-005 – Campo Mourão-PR",
    ),
    RegionalSeed(
        "Guarapuava",
        "ENG. CIVIL JOSE LUIZ CIESLACK",
        "42 3621-7316",
        "Rua Cônego Braga, 25 – Centro – CEP 85010-050, Guarapuava-PR",
    ),
    RegionalSeed(
        "Umuarama",
        "ENG. CIVIL VIVIANNE MENDES LOWE",
        "44 99936-9211",
        "Rua Walter Kraiser, 3055 – CEP 87503-660, Umuarama-PR",
    ),
]


def employee_seed_count() -> int:
    return sum(len(roster) for roster in EMPLOYEE_ROSTERS.values())
