"""Tests for the chart of accounts hierarchy and seeding."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from condoledger.schemas.accounting import AccountCreate, AccountUpdate, AccountResponse
from condoledger.domain.accounting.enums import AccountType, AccountNature
from condoledger.domain.accounting.exceptions import (
    ValidationError,
    InvalidStateError,
    NotFoundError,
)
from condoledger.domain.accounting.default_chart import DEFAULT_CHART
from condoledger.domain.accounting.chart_service import (
    build_hierarchical_tree,
    create_account,
    delete_account,
    get_account_by_code,
    get_account_level,
    get_accounts_by_type,
    get_hierarchical_name,
    infer_account_info,
    seed_default_chart,
    update_account,
)


def test_seed_default_chart_creates_hierarchy(db: Session, conjunto_id: int):
    result = seed_default_chart(db, conjunto_id)

    assert result == {"created": len(DEFAULT_CHART), "updated": 0}

    cash = get_account_by_code(db, conjunto_id, "110505")
    assert cash.level == 4
    assert cash.parent.code == "1105"
    assert cash.accepts_posting is True
    assert cash.account_type == AccountType.ASSET
    assert cash.nature == AccountNature.DEBIT

    group = get_account_by_code(db, conjunto_id, "1105")
    assert group.level == 3
    assert group.accepts_posting is False

    receivable = get_account_by_code(db, conjunto_id, "130505")
    assert receivable.requires_third_party is True
    assert get_account_by_code(db, conjunto_id, "110505").requires_third_party is False


def test_seed_default_chart_is_idempotent(db: Session, conjunto_id: int, chart):
    assert seed_default_chart(db, conjunto_id) == {"created": 0, "updated": 0}

    renamed = chart("110505")
    renamed.name = "RENAMED"
    db.commit()

    assert seed_default_chart(db, conjunto_id) == {"created": 0, "updated": 1}
    assert chart("110505").name == "CAJA GENERAL"


def test_seed_is_scoped_per_tenant(db: Session, conjunto_id: int, chart):
    seed_default_chart(db, 2)

    own = chart("110505")
    other = get_account_by_code(db, 2, "110505")
    assert other is not None
    assert other.id != own.id
    assert other.conjunto_id == 2


@pytest.mark.parametrize("code,account_type,nature", [
    ("1", AccountType.ASSET, AccountNature.DEBIT),
    ("2335", AccountType.LIABILITY, AccountNature.CREDIT),
    ("360505", AccountType.EQUITY, AccountNature.CREDIT),
    ("417005", AccountType.INCOME, AccountNature.CREDIT),
    ("513505", AccountType.EXPENSE, AccountNature.DEBIT),
])
def test_infer_account_info(code, account_type, nature):
    info = infer_account_info(code)
    assert info["account_type"] == account_type
    assert info["nature"] == nature


def test_infer_account_info_unknown_class():
    with pytest.raises(ValidationError):
        infer_account_info("6")


@pytest.mark.parametrize("code,level", [("1", 1), ("11", 2), ("1105", 3), ("110505", 4)])
def test_get_account_level(code, level):
    assert get_account_level(code) == level


@pytest.mark.parametrize("code", ["110", "11050", "1105050", "11A5", ""])
def test_get_account_level_rejects_invalid_codes(code):
    with pytest.raises(ValidationError):
        get_account_level(code)


def test_create_account_derives_level_and_parent(db: Session, conjunto_id: int, chart):
    account = create_account(db, conjunto_id, AccountCreate(code="110501", name="CAJA PRINCIPAL"))

    assert account.level == 4
    assert account.parent_id == chart("1105").id
    assert account.account_type == AccountType.ASSET
    assert account.nature == AccountNature.DEBIT
    assert account.accepts_posting is True

    response = AccountResponse.model_validate(account)
    assert response.code == "110501"


def test_create_account_rejects_duplicate_code(db: Session, conjunto_id: int, chart):
    with pytest.raises(ValidationError):
        create_account(db, conjunto_id, AccountCreate(code="110505", name="DUPLICATE"))


def test_create_account_requires_existing_parent(db: Session, conjunto_id: int, chart):
    # Group 4201 is not part of the default chart
    with pytest.raises(ValidationError):
        create_account(db, conjunto_id, AccountCreate(code="420101", name="OTROS"))

    create_account(db, conjunto_id, AccountCreate(code="4201", name="INGRESOS VARIOS"))
    account = create_account(db, conjunto_id, AccountCreate(code="420101", name="OTROS"))
    assert account.parent.code == "4201"
    assert account.account_type == AccountType.INCOME


def test_create_account_rejects_parent_at_wrong_level(db: Session, conjunto_id: int, chart):
    with pytest.raises(ValidationError):
        create_account(
            db, conjunto_id,
            AccountCreate(code="110599", name="WRONG PARENT", parent_id=chart("11").id)
        )


def test_create_account_rejects_parent_with_other_prefix(db: Session, conjunto_id: int, chart):
    with pytest.raises(ValidationError):
        create_account(
            db, conjunto_id,
            AccountCreate(code="110599", name="WRONG PARENT", parent_id=chart("1110").id)
        )


def test_create_account_rejects_type_mismatch_with_parent(db: Session, conjunto_id: int, chart):
    with pytest.raises(ValidationError):
        create_account(
            db, conjunto_id,
            AccountCreate(code="110598", name="MISMATCH", account_type=AccountType.LIABILITY)
        )


def test_create_account_rejects_parent_from_other_tenant(db: Session, conjunto_id: int, chart):
    seed_default_chart(db, 2)
    foreign_parent = get_account_by_code(db, 2, "1105")

    with pytest.raises(NotFoundError):
        create_account(
            db, conjunto_id,
            AccountCreate(code="110597", name="FOREIGN", parent_id=foreign_parent.id)
        )


def test_update_account_name_always_allowed(db: Session, conjunto_id: int, chart, post):
    post(date(2024, 3, 1), [("110505", 100, 0), ("417005", 0, 100)])

    account = update_account(
        db, conjunto_id, chart("110505").id,
        AccountUpdate(name="CAJA GENERAL PRINCIPAL", description="Efectivo en porteria")
    )
    assert account.name == "CAJA GENERAL PRINCIPAL"
    assert account.description == "Efectivo en porteria"


def test_update_account_structural_change_blocked_by_children(db: Session, conjunto_id: int, chart):
    with pytest.raises(InvalidStateError):
        update_account(db, conjunto_id, chart("1105").id, AccountUpdate(code="1106"))


def test_update_account_structural_change_blocked_by_entries(db: Session, conjunto_id: int, chart, post):
    post(date(2024, 3, 1), [("110510", 100, 0), ("417005", 0, 100)])

    with pytest.raises(InvalidStateError):
        update_account(db, conjunto_id, chart("110510").id, AccountUpdate(nature=AccountNature.CREDIT))


def test_update_account_code_of_unused_leaf(db: Session, conjunto_id: int, chart):
    account = update_account(db, conjunto_id, chart("110510").id, AccountUpdate(code="110515"))

    assert account.code == "110515"
    assert account.parent.code == "1105"
    assert get_account_by_code(db, conjunto_id, "110510") is None


def test_delete_account(db: Session, conjunto_id: int, chart, post):
    leaf = create_account(db, conjunto_id, AccountCreate(code="110520", name="CAJA AUXILIAR"))
    delete_account(db, conjunto_id, leaf.id)
    assert get_account_by_code(db, conjunto_id, "110520") is None

    with pytest.raises(InvalidStateError):
        delete_account(db, conjunto_id, chart("1105").id)

    post(date(2024, 3, 1), [("110505", 100, 0), ("417005", 0, 100)])
    with pytest.raises(InvalidStateError):
        delete_account(db, conjunto_id, chart("110505").id)


def test_get_hierarchical_name(chart):
    assert get_hierarchical_name(chart("110505")) == (
        "ACTIVO > EFECTIVO Y EQUIVALENTES > CAJA > CAJA GENERAL"
    )


def test_build_hierarchical_tree(db: Session, conjunto_id: int, chart):
    tree = build_hierarchical_tree(db, conjunto_id, AccountType.ASSET)

    assert [node["code"] for node in tree] == ["1"]
    groups = [node["code"] for node in tree[0]["children"]]
    assert "11" in groups
    cash_group = next((g for g in tree[0]["children"] if g["code"] == "11"), None)
    caja = next((a for a in cash_group["children"] if a["code"] == "1105"), None)
    assert [a["code"] for a in caja["children"]] == ["110505", "110510"]


def test_get_accounts_by_type(db: Session, conjunto_id: int, chart):
    equity = get_accounts_by_type(db, conjunto_id, AccountType.EQUITY, postable_only=True)
    codes = [a.code for a in equity]

    assert "360505" in codes
    assert "361005" in codes
    assert "36" not in codes
    assert codes == sorted(codes)

    update_account(db, conjunto_id, chart("361005").id, AccountUpdate(is_active=False))
    active_codes = [a.code for a in get_accounts_by_type(db, conjunto_id, AccountType.EQUITY, postable_only=True)]
    assert "361005" not in active_codes


def _fail_commit():
    raise OperationalError("COMMIT", {}, Exception("connection lost"))


def test_create_account_rolls_back_when_commit_fails(db: Session, conjunto_id: int, chart, monkeypatch):
    monkeypatch.setattr(db, "commit", _fail_commit)

    with pytest.raises(OperationalError):
        create_account(db, conjunto_id, AccountCreate(code="110501", name="CAJA PRINCIPAL"))

    monkeypatch.undo()
    assert get_account_by_code(db, conjunto_id, "110501") is None


def test_update_account_rolls_back_when_commit_fails(db: Session, conjunto_id: int, chart, monkeypatch):
    account = chart("110510")
    monkeypatch.setattr(db, "commit", _fail_commit)

    with pytest.raises(OperationalError):
        update_account(db, conjunto_id, account.id, AccountUpdate(name="CAJA MENOR PORTERIA"))

    monkeypatch.undo()
    assert get_account_by_code(db, conjunto_id, "110510").name == "CAJAS MENORES"
