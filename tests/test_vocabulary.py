"""
Tests for master-vocabulary resolution and loading.

Run with: pytest tests/ -v
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from schema import MasterDataUnavailableError
from vocabulary import (
    CATEGORIES,
    DEPARTMENTS,
    MasterDataLoader,
    MasterDataPayload,
    MatchStrategy,
    VelneoDefaults,
    VocabularyResolver,
    normalize_text,
)

from policy_fixtures import build_vocabulary


class TestNormalizeText:
    """Tests for vocabulary text normalization."""

    def test_punctuation_collapsed(self):
        assert normalize_text("DIESEL (GAS-OIL)") == "DIESEL GAS OIL"

    def test_accents_stripped(self):
        assert normalize_text("Eléctrico") == "ELECTRICO"

    def test_currency_signs_kept(self):
        assert normalize_text("u$s") == "U$S"

    def test_none(self):
        assert normalize_text(None) == ""


class TestVocabularyResolver:
    """Tests for exact / containment / synonym / default resolution."""

    def setup_method(self):
        self.resolver = VocabularyResolver(build_vocabulary())

    def test_exact_match_on_backend_spelling(self):
        result = self.resolver.resolve_detailed('fuel', 'DISEL')
        assert result.id == 'DIS'
        assert result.strategy == MatchStrategy.EXACT

    def test_diesel_variants_share_canonical_id(self):
        expected = self.resolver.resolve('fuel', 'DISEL')
        assert self.resolver.resolve('fuel', 'DIESEL (GAS-OIL)') == expected
        assert self.resolver.resolve('fuel', 'gasoil') == expected
        assert self.resolver.resolve('fuel', 'Diesel') == expected

    def test_synonym_strategy_reported(self):
        result = self.resolver.resolve_detailed('fuel', 'DIESEL (GAS-OIL)')
        assert result.strategy == MatchStrategy.SYNONYM
        assert result.name == 'DISEL'

    def test_gasoline_synonym(self):
        assert self.resolver.resolve('fuel', 'Nafta') == 'GAS'

    def test_containment(self):
        result = self.resolver.resolve_detailed('coverage', 'Cobertura TODO RIESGO plus')
        assert result.id == 5
        assert result.strategy == MatchStrategy.CONTAINS

    def test_currency_symbols(self):
        assert self.resolver.resolve('currency', 'U$S') == 2
        assert self.resolver.resolve('currency', 'UYU') == 1
        assert self.resolver.resolve('currency', '$U') == 1

    def test_destination_synonym(self):
        assert self.resolver.resolve('destination', 'uso personal') == 2

    def test_accented_quality_synonym(self):
        assert self.resolver.resolve('quality', 'Dueño') == 2

    def test_department_builtin(self):
        assert self.resolver.resolve('department', 'Maldonado') == 'MALDONADO'
        assert self.resolver.resolve('department', 'Punta del Este') == 'MALDONADO'

    @pytest.mark.parametrize('category', CATEGORIES)
    def test_empty_text_falls_back_to_default(self, category):
        expected = VelneoDefaults().default_id(category)
        assert self.resolver.resolve(category, '') == expected
        assert self.resolver.resolve(category, None) == expected

    @pytest.mark.parametrize('category', CATEGORIES)
    def test_unknown_text_falls_back_to_default(self, category):
        expected = VelneoDefaults().default_id(category)
        result = self.resolver.resolve_detailed(category, 'zzz-unknown-zzz')
        assert result.id == expected
        assert result.is_fallback

    def test_unknown_category_raises(self):
        with pytest.raises(ValueError):
            self.resolver.resolve('color', 'ROJO')

    def test_injected_defaults(self):
        defaults = VelneoDefaults().with_overrides({'category_ids': {'fuel': 'DIS'}})
        resolver = VocabularyResolver(build_vocabulary(), defaults)
        assert resolver.resolve('fuel', '') == 'DIS'
        # Other categories keep their defaults
        assert resolver.resolve('currency', '') == 1

    def test_label_for(self):
        assert self.resolver.label_for('fuel', 'DIS') == 'DISEL'
        assert self.resolver.label_for('fuel', 'XXX') == ''

    def test_resolution_is_stateless(self):
        first = self.resolver.resolve_detailed('fuel', 'DIESEL')
        self.resolver.resolve('fuel', 'NAFTA')
        assert self.resolver.resolve_detailed('fuel', 'DIESEL') == first


class TestVelneoDefaults:
    """Tests for the immutable default configuration."""

    def test_default_ids(self):
        defaults = VelneoDefaults()
        assert defaults.default_id('fuel') == 'GAS'
        assert defaults.default_id('currency') == 1
        assert defaults.default_id('department') == 'MONTEVIDEO'

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            VelneoDefaults().default_id('color')

    def test_with_overrides_returns_new_instance(self):
        defaults = VelneoDefaults()
        changed = defaults.with_overrides({'company_id': 5})
        assert changed.company_id == 5
        assert defaults.company_id == 2

    def test_text_defaults(self):
        text = VelneoDefaults().text_defaults()
        assert text['estadoTramite'] == 'En proceso'
        assert text['estadoPoliza'] == 'VIG'
        assert text['cuotas'] == 1

    def test_nineteen_departments(self):
        assert len(DEPARTMENTS) == 19


class TestMasterDataPayload:
    """Tests for the backend master-data DTOs."""

    def test_to_vocabulary(self):
        payload = MasterDataPayload.model_validate({
            'combustibles': [
                {'id': 'DIS', 'name': 'DISEL'},
                {'id': 'GAS', 'name': 'GASOLINA'},
            ],
            'monedas': [{'id': 1, 'nombre': 'PESO URUGUAYO', 'codigo': 'UYU'}],
            'estadosPoliza': ['VIG', 'VEN'],
        })
        vocabulary = payload.to_vocabulary()

        resolver = VocabularyResolver(vocabulary)
        assert resolver.resolve('fuel', 'DIESEL (GAS-OIL)') == 'DIS'
        assert resolver.resolve('currency', 'UYU') == 1
        assert vocabulary.allows('estadosPoliza', 'VIG')
        assert not vocabulary.allows('estadosPoliza', 'XXX')

    def test_departments_fall_back_to_builtin(self):
        vocabulary = MasterDataPayload.model_validate({}).to_vocabulary()
        assert len(vocabulary.table('department')) == 19


class TestMasterDataLoader:
    """Tests for the memoized, coalescing loader."""

    @pytest.mark.asyncio
    async def test_concurrent_loads_coalesce(self):
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return {'combustibles': [{'id': 'DIS', 'name': 'DISEL'}]}

        loader = MasterDataLoader(fetch)
        first, second = await asyncio.gather(loader.load(), loader.load())

        assert first is second
        assert len(calls) == 1
        assert loader.fetch_count == 1

    @pytest.mark.asyncio
    async def test_result_is_memoized(self):
        async def fetch():
            return {}

        loader = MasterDataLoader(fetch)
        first = await loader.load()
        second = await loader.load()

        assert first is second
        assert loader.fetch_count == 1
        assert loader.is_loaded

    @pytest.mark.asyncio
    async def test_failure_is_not_memoized(self):
        attempts = []

        async def fetch():
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectionError("backend down")
            return {}

        loader = MasterDataLoader(fetch)
        with pytest.raises(MasterDataUnavailableError):
            await loader.load()

        assert not loader.is_loaded
        await loader.load()
        assert loader.is_loaded
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_invalidate_refetches(self):
        async def fetch():
            return {}

        loader = MasterDataLoader(fetch)
        await loader.load()
        loader.invalidate()
        await loader.load()
        assert loader.fetch_count == 2


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
