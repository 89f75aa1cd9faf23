"""Chart of accounts service: account hierarchy, validation and seeding."""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from condoledger.db.session import atomic
from condoledger.models.accounting import ChartOfAccount, AccountingTransactionEntry
from condoledger.schemas.accounting import AccountCreate, AccountUpdate
from condoledger.domain.accounting.enums import AccountType, AccountNature
from condoledger.domain.accounting.exceptions import (
    ValidationError,
    NotFoundError,
    InvalidStateError,
)
from condoledger.domain.accounting.default_chart import DEFAULT_CHART, THIRD_PARTY_PREFIXES

logger = logging.getLogger(__name__)

LEVEL_BY_CODE_LENGTH = {1: 1, 2: 2, 4: 3, 6: 4}
PARENT_CODE_LENGTH = {2: 1, 4: 2, 6: 4}

# First digit of the code -> (type, nature). 8 and 9 are memorandum accounts.
ACCOUNT_CLASSES = {
    "1": (AccountType.ASSET, AccountNature.DEBIT),
    "2": (AccountType.LIABILITY, AccountNature.CREDIT),
    "3": (AccountType.EQUITY, AccountNature.CREDIT),
    "4": (AccountType.INCOME, AccountNature.CREDIT),
    "5": (AccountType.EXPENSE, AccountNature.DEBIT),
    "8": (AccountType.ASSET, AccountNature.DEBIT),
    "9": (AccountType.LIABILITY, AccountNature.CREDIT),
}

STRUCTURAL_FIELDS = ("code", "account_type", "nature", "parent_id")


def get_account_level(code: str) -> int:
    """
    Derive the hierarchy level from the length of an account code.

    Raises:
        ValidationError: If the code is not numeric or has an unsupported length
    """
    if not code or not code.isdigit():
        raise ValidationError(f"Account code must be numeric: {code!r}")
    level = LEVEL_BY_CODE_LENGTH.get(len(code))
    if level is None:
        raise ValidationError(
            f"Account code {code} has invalid length {len(code)}; expected 1, 2, 4 or 6 digits"
        )
    return level


def infer_account_info(code: str) -> Dict[str, Any]:
    """
    Infer account type and nature from the first digit of the code.

    Returns:
        Dict with account_type and nature

    Raises:
        ValidationError: If the code's class digit is unknown
    """
    if not code or not code[0].isdigit():
        raise ValidationError(f"Account code must be numeric: {code!r}")
    info = ACCOUNT_CLASSES.get(code[0])
    if info is None:
        raise ValidationError(f"Unknown account class for code {code}")
    account_type, nature = info
    return {"account_type": account_type, "nature": nature}


def get_account(db: Session, conjunto_id: int, account_id: int) -> ChartOfAccount:
    account = db.query(ChartOfAccount).filter(
        ChartOfAccount.id == account_id,
        ChartOfAccount.conjunto_id == conjunto_id
    ).first()
    if not account:
        raise NotFoundError(f"Account {account_id} not found for conjunto {conjunto_id}")
    return account


def get_account_by_code(db: Session, conjunto_id: int, code: str) -> ChartOfAccount | None:
    return db.query(ChartOfAccount).filter(
        ChartOfAccount.conjunto_id == conjunto_id,
        ChartOfAccount.code == code
    ).first()


def get_accounts_by_type(
    db: Session,
    conjunto_id: int,
    account_type: AccountType,
    postable_only: bool = False,
    include_inactive: bool = False,
) -> List[ChartOfAccount]:
    """List accounts of one type ordered by code."""
    query = db.query(ChartOfAccount).filter(
        ChartOfAccount.conjunto_id == conjunto_id,
        ChartOfAccount.account_type == account_type
    )
    if postable_only:
        query = query.filter(ChartOfAccount.accepts_posting.is_(True))
    if not include_inactive:
        query = query.filter(ChartOfAccount.is_active.is_(True))
    return query.order_by(ChartOfAccount.code).all()


def has_children(db: Session, account: ChartOfAccount) -> bool:
    return db.query(ChartOfAccount.id).filter(
        ChartOfAccount.parent_id == account.id
    ).first() is not None


def has_entries(db: Session, account: ChartOfAccount) -> bool:
    return db.query(AccountingTransactionEntry.id).filter(
        AccountingTransactionEntry.account_id == account.id
    ).first() is not None


def _resolve_parent(
    db: Session,
    conjunto_id: int,
    code: str,
    level: int,
    account_type: AccountType,
    parent_id: int | None,
) -> ChartOfAccount | None:
    """Find and validate the parent of an account with the given code."""
    if level == 1:
        if parent_id is not None:
            raise ValidationError(f"Class account {code} cannot have a parent")
        return None

    if parent_id is not None:
        parent = get_account(db, conjunto_id, parent_id)
    else:
        parent_code = code[:PARENT_CODE_LENGTH[len(code)]]
        parent = get_account_by_code(db, conjunto_id, parent_code)
        if parent is None:
            raise ValidationError(f"Parent account {parent_code} does not exist for {code}")

    if parent.level != level - 1:
        raise ValidationError(
            f"Parent {parent.code} is level {parent.level}; account {code} needs a level {level - 1} parent"
        )
    if not code.startswith(parent.code):
        raise ValidationError(f"Account code {code} must start with parent code {parent.code}")
    if parent.account_type != account_type:
        raise ValidationError(
            f"Account {code} is {account_type.value} but parent {parent.code} is {parent.account_type.value}"
        )
    return parent


def create_account(db: Session, conjunto_id: int, data: AccountCreate) -> ChartOfAccount:
    """
    Create an account in the tenant's chart.

    Args:
        db: Database session
        conjunto_id: Tenant id
        data: Account fields; type and nature default from the code

    Returns:
        Created ChartOfAccount

    Raises:
        ValidationError: If the code is malformed, duplicated, or the parent is inconsistent
        NotFoundError: If an explicit parent does not exist in this tenant
    """
    code = data.code.strip()
    level = get_account_level(code)
    info = infer_account_info(code)
    account_type = data.account_type or info["account_type"]
    nature = data.nature or info["nature"]

    if get_account_by_code(db, conjunto_id, code):
        raise ValidationError(f"Account code {code} already exists")

    parent = _resolve_parent(db, conjunto_id, code, level, account_type, data.parent_id)

    account = ChartOfAccount(
        conjunto_id=conjunto_id,
        code=code,
        name=data.name,
        description=data.description,
        account_type=account_type,
        nature=nature,
        parent_id=parent.id if parent else None,
        level=level,
        accepts_posting=data.accepts_posting if data.accepts_posting is not None else level == 4,
        requires_third_party=data.requires_third_party,
        is_active=data.is_active,
    )
    with atomic(db):
        db.add(account)
    db.refresh(account)

    logger.info(f"Created account {code} ({account_type.value}) for conjunto {conjunto_id}")
    return account


def update_account(
    db: Session,
    conjunto_id: int,
    account_id: int,
    data: AccountUpdate,
) -> ChartOfAccount:
    """
    Update an account.

    Name, description and flags can always change. Code, type, nature and
    parent are frozen once the account has children or entries.

    Raises:
        InvalidStateError: On a structural change to an account in use
        ValidationError: If the new structure is inconsistent
    """
    account = get_account(db, conjunto_id, account_id)
    changes = data.model_dump(exclude_unset=True)

    structural = [
        field for field in STRUCTURAL_FIELDS
        if field in changes and changes[field] != getattr(account, field)
    ]
    if structural:
        if has_children(db, account) or has_entries(db, account):
            raise InvalidStateError(
                f"Cannot change {', '.join(structural)} of account {account.code}: "
                f"it has child accounts or entries"
            )

        code = (changes.get("code") or account.code).strip()
        level = get_account_level(code)
        account_type = changes.get("account_type") or account.account_type
        if "code" in structural and code != account.code and get_account_by_code(db, conjunto_id, code):
            raise ValidationError(f"Account code {code} already exists")

        parent_id = changes.get("parent_id") if "parent_id" in changes else None
        parent = _resolve_parent(db, conjunto_id, code, level, account_type, parent_id)

    with atomic(db):
        if structural:
            account.code = code
            account.level = level
            account.account_type = account_type
            account.nature = changes.get("nature") or account.nature
            account.parent_id = parent.id if parent else None

        for field in ("name", "accepts_posting", "requires_third_party", "is_active"):
            if changes.get(field) is not None:
                setattr(account, field, changes[field])
        if "description" in changes:
            account.description = changes["description"]

    db.refresh(account)

    logger.info(f"Updated account {account.code} for conjunto {conjunto_id}: {sorted(changes)}")
    return account


def delete_account(db: Session, conjunto_id: int, account_id: int) -> None:
    """
    Delete an account that has no children and no entries.

    Raises:
        InvalidStateError: If the account is in use
    """
    account = get_account(db, conjunto_id, account_id)
    if has_children(db, account):
        raise InvalidStateError(f"Account {account.code} has child accounts")
    if has_entries(db, account):
        raise InvalidStateError(f"Account {account.code} has accounting entries")

    with atomic(db):
        db.delete(account)
    logger.info(f"Deleted account {account.code} for conjunto {conjunto_id}")


def get_hierarchical_name(account: ChartOfAccount) -> str:
    """Full path name, e.g. "ACTIVO > EFECTIVO Y EQUIVALENTES > CAJA"."""
    names = []
    node = account
    while node is not None:
        names.append(node.name)
        node = node.parent
    return " > ".join(reversed(names))


def build_hierarchical_tree(
    db: Session,
    conjunto_id: int,
    account_type: AccountType | None = None,
) -> List[Dict[str, Any]]:
    """
    Build the chart as a nested tree.

    Returns:
        List of root nodes; each node is a dict with a "children" list
    """
    query = db.query(ChartOfAccount).filter(ChartOfAccount.conjunto_id == conjunto_id)
    if account_type:
        query = query.filter(ChartOfAccount.account_type == account_type)
    accounts = query.order_by(ChartOfAccount.code).all()

    nodes: Dict[int, Dict[str, Any]] = {}
    roots: List[Dict[str, Any]] = []
    for account in accounts:
        node = {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "account_type": account.account_type.value,
            "nature": account.nature.value,
            "level": account.level,
            "accepts_posting": account.accepts_posting,
            "is_active": account.is_active,
            "children": [],
        }
        nodes[account.id] = node
        parent_node = nodes.get(account.parent_id) if account.parent_id else None
        if parent_node is not None:
            parent_node["children"].append(node)
        else:
            roots.append(node)
    return roots


def seed_default_chart(db: Session, conjunto_id: int) -> Dict[str, int]:
    """
    Create or refresh the default chart of accounts for a tenant.

    Accounts are matched by code, so running it again only updates names and
    structural flags that drifted. ``is_active`` is never touched.

    Returns:
        Dict with "created" and "updated" counts
    """
    existing = {
        a.code: a
        for a in db.query(ChartOfAccount).filter(ChartOfAccount.conjunto_id == conjunto_id).all()
    }
    created = 0
    updated = 0

    with atomic(db):
        for code, name in sorted(DEFAULT_CHART):
            level = get_account_level(code)
            info = infer_account_info(code)
            parent = existing.get(code[:PARENT_CODE_LENGTH[len(code)]]) if level > 1 else None
            values = {
                "name": name,
                "account_type": info["account_type"],
                "nature": info["nature"],
                "level": level,
                "parent_id": parent.id if parent else None,
                "accepts_posting": level == 4,
                "requires_third_party": code[:2] in THIRD_PARTY_PREFIXES and level >= 3,
            }

            account = existing.get(code)
            if account is None:
                account = ChartOfAccount(conjunto_id=conjunto_id, code=code, description=name, **values)
                db.add(account)
                db.flush()
                existing[code] = account
                created += 1
                continue

            dirty = False
            for field, value in values.items():
                if getattr(account, field) != value:
                    setattr(account, field, value)
                    dirty = True
            if dirty:
                updated += 1

    logger.info(
        f"Seeded chart of accounts for conjunto {conjunto_id}: "
        f"{created} created, {updated} updated"
    )
    return {"created": created, "updated": updated}
