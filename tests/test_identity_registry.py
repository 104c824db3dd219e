"""Tests for the identity registry."""

import threading

import pytest

from trustregistry import (
    AddressAlreadyRegistered,
    AgentNotFound,
    DIDAddressMismatch,
    DIDAlreadyRegistered,
    DIDNotRegistered,
    DomainAlreadyRegistered,
    FeePolicy,
    IdentityRegistry,
    InsufficientFee,
    InvalidAddress,
    InvalidDeveloperDID,
    InvalidInput,
    Ledger,
    RequireDIDPolicy,
    RequireDomainPolicy,
    RequireIdentifierPolicy,
    UnauthorizedRegistration,
    UnauthorizedUpdate,
    build_did,
)


def _register(identity, address, **kwargs):
    return identity.register(address, address, **kwargs)


class TestRegister:
    def test_ids_are_sequential_from_one(self, identity, addr):
        ids = [_register(identity, addr(n)) for n in range(1, 6)]
        assert ids == [1, 2, 3, 4, 5]
        assert identity.count() == 5

    def test_record_fields(self, identity, ledger, addr):
        ledger.set_time(42)
        did = build_did(addr(1))
        agent_id = _register(identity, addr(1), domain="alpha.example", did=did, description="alpha")
        record = identity.get(agent_id)
        assert record.agent_id == 1
        assert record.owner_address == addr(1)
        assert record.domain == "alpha.example"
        assert record.did == did
        assert record.description == "alpha"
        assert record.developer_did == ""
        assert record.registered_at == 42

    def test_self_registration_only(self, identity, addr):
        with pytest.raises(UnauthorizedRegistration):
            identity.register(addr(1), addr(2))
        assert identity.count() == 0

    def test_sender_address_case_is_ignored(self, identity):
        lower = "0x" + "ab" * 20
        upper = "0x" + "AB" * 20
        assert identity.register(upper, lower) == 1
        assert identity.get(1).owner_address == lower

    @pytest.mark.parametrize("bad", ["0x1234", "ab" * 20, "0x" + "zz" * 20])
    def test_malformed_address(self, identity, bad):
        with pytest.raises(InvalidAddress):
            identity.register("0x" + "11" * 20, bad)

    def test_zero_address(self, identity):
        zero = "0x" + "00" * 20
        with pytest.raises(InvalidAddress):
            identity.register(zero, zero)

    def test_domain_round_trip_ignores_case(self, identity, addr):
        agent_id = _register(identity, addr(1), domain="Example.COM")
        for query in ("EXAMPLE.com", "example.com", "Example.Com"):
            record = identity.resolve_by_domain(query)
            assert record.agent_id == agent_id
            assert record.domain == "Example.COM"

    def test_domain_collision_ignores_case(self, identity, addr):
        _register(identity, addr(1), domain="Example.COM")
        with pytest.raises(DomainAlreadyRegistered):
            _register(identity, addr(2), domain="example.com")
        assert identity.count() == 1

    def test_did_must_bind_to_address(self, identity, addr):
        with pytest.raises(DIDAddressMismatch):
            _register(identity, addr(1), did=build_did(addr(2)))

    def test_did_collision(self, identity, addr):
        did = build_did(addr(1))
        _register(identity, addr(1), did=did)
        with pytest.raises(DIDAlreadyRegistered):
            _register(identity, addr(1), did=did)

    def test_address_collision(self, identity, addr):
        _register(identity, addr(1), domain="one.example")
        with pytest.raises(AddressAlreadyRegistered):
            _register(identity, addr(1), domain="two.example")

    def test_failed_registration_does_not_consume_id(self, identity, addr):
        _register(identity, addr(1), domain="taken.example")
        with pytest.raises(DomainAlreadyRegistered):
            _register(identity, addr(2), domain="TAKEN.example")
        assert _register(identity, addr(2), domain="free.example") == 2
        with pytest.raises(AgentNotFound):
            identity.resolve_by_address(addr(3))

    def test_registration_event(self, identity, ledger, addr):
        did = build_did(addr(1))
        _register(identity, addr(1), domain="Alpha.example", did=did)
        (event,) = ledger.events("AgentRegistered")
        assert event.payload == {
            "agent_id": 1,
            "owner_address": addr(1),
            "domain": "Alpha.example",
            "did": did,
        }

    def test_failed_registration_emits_nothing(self, identity, ledger, addr):
        with pytest.raises(UnauthorizedRegistration):
            identity.register(addr(1), addr(2))
        assert ledger.events() == []


class TestRegistrationPolicies:
    def _identity(self, policy):
        return IdentityRegistry(Ledger(), policy)

    def test_require_domain(self, addr):
        identity = self._identity(RequireDomainPolicy())
        with pytest.raises(InvalidInput):
            _register(identity, addr(1), did=build_did(addr(1)))
        assert _register(identity, addr(1), domain="a.example") == 1

    def test_require_did(self, addr):
        identity = self._identity(RequireDIDPolicy())
        with pytest.raises(InvalidInput):
            _register(identity, addr(1), domain="a.example")
        assert _register(identity, addr(1), did=build_did(addr(1))) == 1

    def test_require_identifier(self, addr):
        identity = self._identity(RequireIdentifierPolicy())
        with pytest.raises(InvalidInput):
            _register(identity, addr(1))
        assert _register(identity, addr(1), domain="a.example") == 1
        assert _register(identity, addr(2), did=build_did(addr(2))) == 2

    def test_fee_is_burned(self, addr):
        policy = FeePolicy(fee=5)
        identity = self._identity(policy)
        with pytest.raises(InsufficientFee):
            _register(identity, addr(1), value=4)
        assert policy.total_burned == 0
        _register(identity, addr(1), value=5)
        _register(identity, addr(2), value=7)
        assert policy.total_burned == 12

    def test_fee_not_burned_on_conflict(self, addr):
        policy = FeePolicy(fee=5)
        identity = self._identity(policy)
        _register(identity, addr(1), domain="a.example", value=5)
        with pytest.raises(DomainAlreadyRegistered):
            _register(identity, addr(2), domain="a.example", value=5)
        assert policy.total_burned == 5

    def test_fee_with_identifier_requirement(self, addr):
        identity = self._identity(FeePolicy(fee=1, identifiers=RequireDomainPolicy()))
        with pytest.raises(InvalidInput):
            _register(identity, addr(1), value=1)

    def test_negative_fee_rejected(self):
        with pytest.raises(ValueError):
            FeePolicy(fee=-1)


class TestUpdateAgent:
    def test_unknown_agent(self, identity, addr):
        with pytest.raises(AgentNotFound):
            identity.update_agent(addr(1), 99, new_description="x")

    def test_only_owner(self, identity, addr):
        _register(identity, addr(1))
        with pytest.raises(UnauthorizedUpdate):
            identity.update_agent(addr(2), 1, new_description="x")

    def test_address_rotation(self, identity, ledger, addr):
        _register(identity, addr(1), domain="a.example")
        ledger.advance(5)
        assert identity.update_agent(addr(1), 1, new_address=addr(2)) is True
        record = identity.resolve_by_address(addr(2))
        assert record.agent_id == 1
        assert record.updated_at == 5
        with pytest.raises(AgentNotFound):
            identity.resolve_by_address(addr(1))
        # the previous owner has lost control
        with pytest.raises(UnauthorizedUpdate):
            identity.update_agent(addr(1), 1, new_description="x")

    def test_address_collision(self, identity, addr):
        _register(identity, addr(1))
        _register(identity, addr(2))
        with pytest.raises(AddressAlreadyRegistered):
            identity.update_agent(addr(1), 1, new_address=addr(2))

    def test_same_address_is_not_a_change(self, identity, ledger, addr):
        _register(identity, addr(1))
        identity.update_agent(addr(1), 1, new_address=addr(1))
        assert ledger.events("AgentUpdated") == []

    def test_did_checked_against_new_address(self, identity, addr):
        _register(identity, addr(1))
        identity.update_agent(addr(1), 1, new_address=addr(2), new_did=build_did(addr(2)))
        assert identity.resolve_by_did(build_did(addr(2))).owner_address == addr(2)

    def test_did_bound_to_old_address_rejected_with_rotation(self, identity, addr):
        _register(identity, addr(1))
        with pytest.raises(DIDAddressMismatch):
            identity.update_agent(addr(1), 1, new_address=addr(2), new_did=build_did(addr(1)))

    def test_rotation_keeping_stale_did_is_atomic(self, identity, addr):
        did = build_did(addr(1))
        _register(identity, addr(1), domain="a.example", did=did)
        with pytest.raises(DIDAddressMismatch):
            identity.update_agent(addr(1), 1, new_address=addr(2), new_description="moved")
        record = identity.get(1)
        assert record.owner_address == addr(1)
        assert record.description == ""
        assert identity.resolve_by_address(addr(1)).agent_id == 1
        with pytest.raises(AgentNotFound):
            identity.resolve_by_address(addr(2))

    def test_rotation_with_cleared_did(self, identity, addr):
        did = build_did(addr(1))
        _register(identity, addr(1), did=did)
        identity.update_agent(addr(1), 1, new_address=addr(2), new_did="")
        assert identity.get(1).did == ""
        with pytest.raises(DIDNotRegistered):
            identity.resolve_by_did(did)

    def test_did_mismatch(self, identity, addr):
        _register(identity, addr(1))
        with pytest.raises(DIDAddressMismatch):
            identity.update_agent(addr(1), 1, new_did=build_did(addr(3)))

    def test_did_replaced(self, identity, addr):
        old = build_did(addr(1))
        new = build_did(addr(1), method="did:agent:ledger:test")
        _register(identity, addr(1), did=old)
        identity.update_agent(addr(1), 1, new_did=new)
        assert identity.resolve_by_did(new).agent_id == 1
        with pytest.raises(DIDNotRegistered):
            identity.resolve_by_did(old)

    def test_domain_update_frees_old_domain(self, identity, addr):
        _register(identity, addr(1), domain="old.example")
        identity.update_agent(addr(1), 1, new_domain="New.example")
        assert identity.resolve_by_domain("new.EXAMPLE").agent_id == 1
        with pytest.raises(AgentNotFound):
            identity.resolve_by_domain("old.example")
        assert _register(identity, addr(2), domain="OLD.example") == 2

    def test_domain_update_collision(self, identity, addr):
        _register(identity, addr(1), domain="one.example")
        _register(identity, addr(2), domain="two.example")
        with pytest.raises(DomainAlreadyRegistered):
            identity.update_agent(addr(1), 1, new_domain="TWO.example")

    def test_domain_recasing(self, identity, addr):
        _register(identity, addr(1), domain="one.example")
        identity.update_agent(addr(1), 1, new_domain="ONE.example")
        assert identity.resolve_by_domain("one.example").domain == "ONE.example"

    def test_clearing_required_identifier_rejected(self, addr):
        identity = IdentityRegistry(Ledger(), RequireDomainPolicy())
        _register(identity, addr(1), domain="a.example")
        with pytest.raises(InvalidInput):
            identity.update_agent(addr(1), 1, new_domain="")
        assert identity.get(1).domain == "a.example"

    def test_update_event(self, identity, ledger, addr):
        _register(identity, addr(1))
        identity.update_agent(addr(1), 1, new_address=addr(2), new_description="moved")
        (event,) = ledger.events("AgentUpdated")
        assert event["agent_id"] == 1
        assert event["updated_fields"] == ("owner_address", "description")
        assert event["owner_address"] == addr(2)
        assert event["description"] == "moved"

    def test_update_description(self, identity, addr):
        _register(identity, addr(1))
        assert identity.update_description(addr(1), 1, "hello") is True
        assert identity.get(1).description == "hello"
        with pytest.raises(UnauthorizedUpdate):
            identity.update_description(addr(2), 1, "hijack")


class TestDeveloperLink:
    def test_link(self, identity, ledger, addr):
        _register(identity, addr(1))
        developer_did = build_did(addr(9))
        assert identity.link_developer_did(addr(1), 1, addr(9), developer_did) is True
        assert identity.get_developer_did(1) == developer_did
        (event,) = ledger.events("AgentDeveloperLinked")
        assert event.payload == {"agent_id": 1, "developer_did": developer_did}

    def test_link_overwrites(self, identity, addr):
        _register(identity, addr(1))
        identity.link_developer_did(addr(1), 1, addr(8), build_did(addr(8)))
        identity.link_developer_did(addr(1), 1, addr(9), build_did(addr(9)))
        assert identity.get_developer_did(1) == build_did(addr(9))

    def test_link_requires_binding(self, identity, addr):
        _register(identity, addr(1))
        with pytest.raises(InvalidDeveloperDID):
            identity.link_developer_did(addr(1), 1, addr(9), build_did(addr(8)))

    def test_link_owner_only(self, identity, addr):
        _register(identity, addr(1))
        with pytest.raises(UnauthorizedUpdate):
            identity.link_developer_did(addr(9), 1, addr(9), build_did(addr(9)))


class TestReads:
    def test_exists(self, identity, addr):
        assert identity.exists(1) is False
        _register(identity, addr(1))
        assert identity.exists(1) is True
        assert identity.exists(0) is False

    def test_get_unknown(self, identity):
        with pytest.raises(AgentNotFound):
            identity.get(1)

    def test_resolve_unknown_keys(self, identity, addr):
        with pytest.raises(AgentNotFound):
            identity.resolve_by_domain("missing.example")
        with pytest.raises(AgentNotFound):
            identity.resolve_by_domain("")
        with pytest.raises(AgentNotFound):
            identity.resolve_by_address(addr(1))
        with pytest.raises(DIDNotRegistered):
            identity.resolve_by_did(build_did(addr(1)))
        with pytest.raises(DIDNotRegistered):
            identity.resolve_by_did("")

    def test_reads_return_copies(self, identity, addr):
        _register(identity, addr(1), description="original")
        record = identity.get(1)
        record.description = "mutated"
        record.owner_address = addr(5)
        assert identity.get(1).description == "original"
        assert identity.owner_of(1) == addr(1)

    def test_list_agents(self, identity, addr):
        for n in (1, 2, 3):
            _register(identity, addr(n))
        assert [r.agent_id for r in identity.list_agents()] == [1, 2, 3]

    @pytest.mark.parametrize("read", [lambda r: r.exists(1), lambda r: r.count()])
    def test_reads_wait_for_open_transaction(self, identity, ledger, addr, read):
        _register(identity, addr(1))
        results = []
        with ledger.lock:
            reader = threading.Thread(target=lambda: results.append(read(identity)))
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            assert results == []
        reader.join(timeout=5)
        assert results in ([True], [1])
