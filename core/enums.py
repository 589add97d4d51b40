# substance, route, matrix and metabolism identifiers

from __future__ import annotations

from enum import IntEnum, StrEnum


class DrugId(StrEnum):
    fentanyl = "fentanyl"
    nitazenes = "nitazenes"
    amphetamine = "amphetamine"
    methamphetamine = "methamphetamine"
    dextroamphetamine = "dextroamphetamine"
    hydromorphone = "hydromorphone"
    oxycodone = "oxycodone"
    morphine = "morphine"
    hydrocodone = "hydrocodone"
    codeine = "codeine"
    pethidine = "pethidine"
    barbiturates = "barbiturates"
    benzodiazepines = "benzodiazepines"
    alcohol = "alcohol"
    lsd = "lsd"
    ketamine = "ketamine"
    mescaline = "mescaline"
    psilocybin = "psilocybin"
    dmt = "dmt"
    ghb = "ghb"
    methaqualone = "methaqualone"
    methadone = "methadone"
    dextropropoxyphene = "dextropropoxyphene"
    diamorphine = "diamorphine"


class RouteId(StrEnum):
    oral = "oral"
    intravenous = "intravenous"
    intramuscular = "intramuscular"
    subcutaneous = "subcutaneous"
    intranasal = "intranasal"
    inhalation = "inhalation"
    sublingual = "sublingual"
    transdermal = "transdermal"
    rectal = "rectal"
    buccal = "buccal"
    topical = "topical"


class Matrix(StrEnum):
    saliva = "saliva"
    urine = "urine"


class Metabolism(IntEnum):
    slow = 1
    normal = 2
    fast = 3


class RulePhase(StrEnum):
    drug = "drug"
    universal = "universal"
