"""
Tests des conversions kg ↔ cartons et des poids.

La politique d'arrondi est reprise telle quelle sur les documents
douaniers : cartons nécessaires au supérieur, cartons disponibles
à l'inférieur.
"""

from decimal import Decimal

import pytest

from cargaison.domain import conversions


class TestCartonsPourKg:
    def test_zéro_kg_zéro_carton(self):
        assert conversions.cartons_pour_kg(0, 20) == 0

    def test_quantité_négative_zéro_carton(self):
        assert conversions.cartons_pour_kg(-5, 20) == 0

    def test_carton_plein(self):
        assert conversions.cartons_pour_kg(20, 20) == 1

    def test_carton_entamé_compte_en_entier(self):
        assert conversions.cartons_pour_kg(20.01, 20) == 2

    def test_constante_par_défaut_20kg(self):
        assert conversions.cartons_pour_kg(45) == 3

    def test_constante_propre_à_l_article(self):
        assert conversions.cartons_pour_kg(25, Decimal("12.5")) == 2
        assert conversions.cartons_pour_kg(26, Decimal("12.5")) == 3


class TestCartonsDisponibles:
    def test_arrondi_inférieur(self):
        assert conversions.cartons_disponibles(55, 20) == 2

    def test_diffère_des_cartons_nécessaires_hors_multiple(self):
        """25kg à 20kg/carton : 1 carton disponible, 2 cartons nécessaires."""
        assert conversions.cartons_disponibles(25, 20) == 1
        assert conversions.cartons_pour_kg(25, 20) == 2

    def test_identiques_sur_un_multiple(self):
        assert conversions.cartons_disponibles(40, 20) == conversions.cartons_pour_kg(40, 20) == 2


class TestKgParCarton:
    def test_valeur_absente_ou_invalide(self):
        assert conversions.kg_par_carton(None) == Decimal("20")
        assert conversions.kg_par_carton("") == Decimal("20")
        assert conversions.kg_par_carton(0) == Decimal("20")

    def test_valeur_de_l_article(self):
        assert conversions.kg_par_carton("10") == Decimal("10")


class TestPoids:
    def test_poids_brut(self):
        assert conversions.poids_brut(55, 3, Decimal("1.12")) == Decimal("58.36")

    def test_poids_brut_sans_poids_de_carton(self):
        assert conversions.poids_brut(55, 3, None) == Decimal("55")

    def test_poids_vgm_ajoute_la_tare(self):
        assert conversions.poids_vgm(29120, 4640) == Decimal("33760")

    def test_float_converti_sans_bruit(self):
        assert conversions.en_décimal(20.01) == Decimal("20.01")
        assert conversions.en_décimal(None) == Decimal("0")


class TestSaisie:
    @pytest.mark.parametrize("saisie", ["abc", "12kg", "NaN", "Infinity", "-Infinity", [10]])
    def test_saisie_non_numérique(self, saisie):
        with pytest.raises(ValueError, match="Quantité invalide"):
            conversions.en_décimal(saisie)

    def test_kg_négatif_refusé(self):
        with pytest.raises(ValueError, match="négative"):
            conversions.en_kg(-50)

    def test_kg_au_gramme_près(self):
        assert conversions.en_kg("1.2300") == Decimal("1.23")
        assert conversions.en_kg("10.005") == Decimal("10.005")

    def test_kg_plus_précis_que_le_gramme_refusé(self):
        with pytest.raises(ValueError, match="trop précise"):
            conversions.en_kg("1.0005")

    def test_kg_hors_limites(self):
        with pytest.raises(ValueError, match="hors limites"):
            conversions.en_kg("1E+30")
