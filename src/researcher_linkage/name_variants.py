"""Nickname and formal first-name equivalence.

The table maps a formal first name to its known nicknames; the reverse index is
computed once at import. Both are read-only for the life of the process.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

_NAME_VARIANTS: dict[str, tuple[str, ...]] = {
    # English
    "robert": ("bob", "rob", "robbie", "bobby", "bert"),
    "william": ("bill", "will", "billy", "willy", "liam"),
    "richard": ("rick", "dick", "rich", "ricky"),
    "james": ("jim", "jimmy", "jamie"),
    "john": ("jack", "johnny", "jon"),
    "michael": ("mike", "mick", "mickey", "mikey"),
    "joseph": ("joe", "joey"),
    "thomas": ("tom", "tommy"),
    "charles": ("charlie", "chuck", "chas"),
    "david": ("dave", "davy"),
    "daniel": ("dan", "danny"),
    "edward": ("ed", "eddie", "ted", "teddy", "ned"),
    "steven": ("steve", "stevie"),
    "stephen": ("steve", "stevie"),
    "christopher": ("chris", "kit"),
    "matthew": ("matt", "matty"),
    "anthony": ("tony", "ant"),
    "andrew": ("andy", "drew"),
    "nicholas": ("nick", "nicky"),
    "benjamin": ("ben", "benny", "benji"),
    "samuel": ("sam", "sammy"),
    "alexander": ("alex", "al", "xander", "sasha"),
    "jonathan": ("jon", "jonny", "nathan"),
    "timothy": ("tim", "timmy"),
    "gregory": ("greg", "gregg"),
    "patrick": ("pat", "paddy"),
    "raymond": ("ray",),
    "lawrence": ("larry", "laurie"),
    "gerald": ("gerry", "jerry"),
    "kenneth": ("ken", "kenny"),
    "ronald": ("ron", "ronny"),
    "donald": ("don", "donny"),
    "phillip": ("phil",),
    "philip": ("phil",),
    "eugene": ("gene",),
    "walter": ("walt", "wally"),
    "frederick": ("fred", "freddy", "freddie"),
    "albert": ("al", "bert", "bertie"),
    "arthur": ("art", "artie"),
    "henry": ("hank", "harry", "hal"),
    "harold": ("harry", "hal"),
    "peter": ("pete",),
    "douglas": ("doug", "dougie"),
    "leonard": ("leo", "len", "lenny"),
    "theodore": ("ted", "teddy", "theo"),
    "francis": ("frank", "frankie", "fran"),
    "bernard": ("bernie", "barney"),
    "louis": ("lou", "louie"),
    "vincent": ("vince", "vinny", "vin"),
    "nathaniel": ("nate", "nat", "nathan"),
    "elizabeth": ("liz", "lizzy", "beth", "betty", "betsy", "eliza", "lisa"),
    "margaret": ("maggie", "meg", "peggy", "marge", "margie"),
    "catherine": ("cathy", "kate", "katie", "cat"),
    "katherine": ("kathy", "kate", "katie", "kat"),
    "patricia": ("pat", "patty", "tricia", "trish"),
    "jennifer": ("jen", "jenny", "jenn"),
    "rebecca": ("becky", "becca"),
    "deborah": ("deb", "debbie"),
    "susan": ("sue", "susie", "suzy"),
    "dorothy": ("dot", "dotty", "dottie"),
    "victoria": ("vicky", "vicki", "tori"),
    "christine": ("chris", "chrissy", "tina"),
    "christina": ("chris", "chrissy", "tina"),
    "alexandra": ("alex", "lexi", "sandra"),
    "samantha": ("sam", "sammy"),
    "jessica": ("jess", "jessie"),
    "stephanie": ("steph", "stephie"),
    "melissa": ("mel", "missy", "lissa"),
    "jacqueline": ("jackie", "jacqui"),
    "carolyn": ("carol", "carrie", "lyn"),
    "caroline": ("carol", "carrie", "line"),
    "abigail": ("abby", "gail"),
    "madeleine": ("maddie", "maddy"),
    "madeline": ("maddie", "maddy"),
    "josephine": ("jo", "josie"),
    "gabrielle": ("gabby", "gabi", "elle"),
    "gabriella": ("gabby", "gabi", "ella"),
    "natalie": ("nat", "natty"),
    "sarah": ("sally", "sadie"),
    "nicole": ("nicky", "nikki"),
    # International
    "mikhail": ("misha", "michael"),
    "aleksandr": ("sasha", "alex", "alexander"),
    "yevgeny": ("eugene", "zhenya"),
    "dmitri": ("dima", "dmitry"),
    "nikolai": ("kolya", "nicholas"),
    "sergei": ("seryozha",),
    "vladimir": ("volodya", "vlad"),
    "giuseppe": ("joe", "joseph"),
    "giovanni": ("john", "gianni"),
    "francesco": ("frank", "francis"),
    "antonio": ("tony", "anthony"),
    "johannes": ("john", "hans", "johan"),
    "wilhelm": ("william", "willi"),
    "friedrich": ("frederick", "fritz"),
    "heinrich": ("henry", "heinz"),
    "karl": ("charles", "carl"),
}


def _build_reverse(table: Mapping[str, tuple[str, ...]]) -> dict[str, tuple[str, ...]]:
    reverse: dict[str, list[str]] = {}
    for formal, nicknames in table.items():
        for nickname in nicknames:
            reverse.setdefault(nickname, []).append(formal)
    return {nickname: tuple(formals) for nickname, formals in reverse.items()}


NAME_VARIANTS: Mapping[str, tuple[str, ...]] = MappingProxyType(_NAME_VARIANTS)
NAME_VARIANT_REVERSE: Mapping[str, tuple[str, ...]] = MappingProxyType(_build_reverse(_NAME_VARIANTS))


def variants_of(first_name: str | None) -> frozenset[str]:
    """Return every known variant of a first name, the name itself included.

    Nicknames resolve through each of their formal names, so siblings come
    along too: ``bob`` yields ``robert`` and ``rob``.
    """
    if not first_name:
        return frozenset()

    normalized = first_name.strip().lower()
    variants = {normalized}
    variants.update(NAME_VARIANTS.get(normalized, ()))
    for formal in NAME_VARIANT_REVERSE.get(normalized, ()):
        variants.add(formal)
        variants.update(NAME_VARIANTS.get(formal, ()))
    return frozenset(variants)


def are_variants(name1: str | None, name2: str | None) -> bool:
    if not name1 or not name2:
        return False
    n1 = name1.strip().lower()
    n2 = name2.strip().lower()
    return n1 == n2 or n2 in variants_of(n1)


def formal_names_for(nickname: str | None) -> tuple[str, ...]:
    """Formal names a nickname expands to (``will`` -> ``william``)."""
    if not nickname:
        return ()
    return NAME_VARIANT_REVERSE.get(nickname.strip().lower(), ())
