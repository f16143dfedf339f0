"""
Unit tests for token issuing, caller resolution and ownership checks.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from ecofinds.errors import Forbidden, NotFound, Unauthenticated
from ecofinds.extensions import db, identity
from ecofinds.models import Product
from ecofinds.services.identity_service import (
    IdentityService,
    OwnedResource,
    bearer_token,
)
from tests.conftest import make_category, make_user


class TestBearerToken:
    """Tests for Authorization header parsing."""

    def test_extracts_token(self):
        request = SimpleNamespace(headers={'Authorization': 'Bearer abc.def'})
        assert bearer_token(request) == 'abc.def'

    def test_scheme_is_case_insensitive(self):
        request = SimpleNamespace(headers={'Authorization': 'bearer abc'})
        assert bearer_token(request) == 'abc'

    @pytest.mark.parametrize('header', [None, '', 'Bearer', 'Basic abc'])
    def test_missing_or_other_scheme(self, header):
        headers = {} if header is None else {'Authorization': header}
        assert bearer_token(SimpleNamespace(headers=headers)) is None


class TestCredentials:
    """Tests for issue_credential / resolve_caller."""

    def test_round_trip_returns_same_user(self, app_ctx):
        user = make_user('alice')
        token = identity.issue_credential(user.id)

        resolved = identity.resolve_caller(token)

        assert resolved.id == user.id
        assert resolved.username == 'alice'

    def test_deleted_user_is_rejected(self, app_ctx):
        user = make_user('ghost')
        token = identity.issue_credential(user.id)
        db.session.delete(user)
        db.session.commit()

        with pytest.raises(Unauthenticated) as exc:
            identity.resolve_caller(token)
        assert exc.value.message == 'User not found'

    def test_expired_token(self, app_ctx):
        user = make_user('late')
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = identity.issue_credential(user.id, now=issued)

        with pytest.raises(Unauthenticated) as exc:
            identity.resolve_caller(token)
        assert exc.value.message == 'Token expired'

    def test_missing_token(self, app_ctx):
        with pytest.raises(Unauthenticated) as exc:
            identity.resolve_caller(None)
        assert exc.value.message == 'Access token required'

    def test_malformed_token(self, app_ctx):
        with pytest.raises(Unauthenticated) as exc:
            identity.resolve_caller('not-a-jwt')
        assert exc.value.message == 'Invalid token'

    def test_token_signed_with_other_key(self, app_ctx):
        user = make_user('mallory')
        forged = IdentityService(secret_key='someone-else').issue_credential(
            user.id)

        with pytest.raises(Unauthenticated) as exc:
            identity.resolve_caller(forged)
        assert exc.value.message == 'Invalid token'

    def test_optional_resolution_returns_none(self, app_ctx):
        assert identity.resolve_caller_optional(None) is None
        assert identity.resolve_caller_optional('garbage') is None

    def test_init_app_reads_config(self, app):
        assert identity.secret_key == 'test-jwt-secret'
        assert identity.algorithm == 'HS256'
        assert identity.token_lifetime == timedelta(days=7)

    def test_service_without_key_refuses_to_sign(self):
        with pytest.raises(RuntimeError):
            IdentityService().issue_credential(1)


class TestAuthorizeOwnership:
    """Tests for resource ownership checks."""

    def _product(self, seller):
        category_id = make_category().id
        product = Product(
            seller_id=seller.id,
            category_id=category_id,
            title='Desk',
            description='Wooden desk',
            price=Decimal('40.00')
        )
        db.session.add(product)
        db.session.commit()
        return product

    def test_owner_gets_resource(self, app_ctx):
        seller = make_user('seller')
        product = self._product(seller)

        loaded = identity.authorize_ownership(
            OwnedResource.PRODUCT, product.id, seller)

        assert loaded.id == product.id

    def test_other_user_is_forbidden(self, app_ctx):
        seller = make_user('seller')
        other = make_user('other')
        product = self._product(seller)

        with pytest.raises(Forbidden):
            identity.authorize_ownership(
                OwnedResource.PRODUCT, product.id, other)

    @pytest.mark.parametrize('kind', list(OwnedResource))
    def test_missing_resource_is_not_found(self, app_ctx, kind):
        caller = make_user('caller')

        with pytest.raises(NotFound):
            identity.authorize_ownership(kind, 9999, caller)

    def test_missing_resource_without_caller_is_not_found(self, app_ctx):
        with pytest.raises(NotFound):
            identity.authorize_ownership(OwnedResource.ORDER, 9999, None)
