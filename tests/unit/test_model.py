"""
Tests unitaires du modèle de domaine.

Ces tests vérifient le comportement de l'agrégat Commande
en isolation complète, sans base de données ni I/O.
"""

from decimal import Decimal

import pytest

from cargaison.domain import doublons, events
from cargaison.domain.model import (
    ArticleAlloué,
    Cargo,
    Commande,
    CommandeVerrouillée,
    LigneDeCommande,
    LigneEnDouble,
    LigneInconnue,
    StatutPaiement,
    StatutSoumission,
    TransitionInvalide,
    TypeCommande,
)
from cargaison.domain.suffisance import ProblèmeStock, Sévérité


# --- Helpers ---


def créer_commande(*lignes: LigneDeCommande) -> Commande:
    commande = Commande("CMD-001")
    for ligne in lignes:
        commande.ajouter_ligne(ligne)
    return commande


def problème(article_id: str, depot_id: str, manquant: int) -> ProblèmeStock:
    return ProblèmeStock(
        article_id=article_id,
        depot_id=depot_id,
        libellé_article=article_id,
        libellé_depot=depot_id,
        demandé_kg=Decimal(manquant),
        disponible_kg=Decimal("0"),
        manquant_kg=Decimal(manquant),
        sévérité=Sévérité.INDISPONIBLE,
    )


# --- Lignes de commande ---


class TestLigneDeCommande:
    def test_cartons_arrondis_au_supérieur(self):
        ligne = LigneDeCommande("POULPE", "NDB", 45)
        assert ligne.quantité_carton == 3

    def test_constante_de_colisage_de_l_article(self):
        ligne = LigneDeCommande("POULPE", "NDB", 45, kg_par_carton=10)
        assert ligne.quantité_carton == 5

    def test_total_de_ligne(self):
        ligne = LigneDeCommande("POULPE", "NDB", 100, prix_unitaire="4.5")
        assert ligne.prix_total == Decimal("450")


class TestDoublons:
    def test_détecte_un_doublon(self):
        lignes = [LigneDeCommande("A", "X", 10), LigneDeCommande("B", "X", 10)]
        assert doublons.ferait_doublon(lignes, "A", "X")

    def test_même_article_autre_dépôt(self):
        lignes = [LigneDeCommande("A", "X", 10)]
        assert not doublons.ferait_doublon(lignes, "A", "Y")

    def test_ignore_la_ligne_en_cours_d_édition(self):
        lignes = [LigneDeCommande("A", "X", 10)]
        assert not doublons.ferait_doublon(lignes, "A", "X", sauf_index=0)

    def test_clé_incomplète_jamais_en_double(self):
        lignes = [LigneDeCommande("A", None, 10)]
        assert not doublons.ferait_doublon(lignes, "A", None)

    def test_retourne_la_ligne_existante(self):
        existante = LigneDeCommande("A", "X", 10)
        lignes = [LigneDeCommande("B", "X", 10), existante]
        assert doublons.ligne_en_double(lignes, "A", "X") == (1, existante)


class TestCommandeLignes:
    def test_ajouter_une_ligne_en_double_est_refusé(self):
        commande = créer_commande(
            LigneDeCommande("A", "X", 10, libellé_article="Poulpe", libellé_depot="Nouadhibou")
        )

        with pytest.raises(LigneEnDouble) as exc:
            commande.ajouter_ligne(LigneDeCommande("A", "X", 5))

        assert exc.value.index_existant == 0
        assert exc.value.ligne_existante.libellé_article == "Poulpe"
        assert "Nouadhibou" in str(exc.value)
        assert len(commande.lignes) == 1

    def test_même_article_autre_dépôt_accepté(self):
        commande = créer_commande(LigneDeCommande("A", "X", 10))
        index = commande.ajouter_ligne(LigneDeCommande("A", "Y", 10))
        assert index == 1

    def test_changer_de_dépôt_vers_un_doublon_ne_modifie_rien(self):
        commande = créer_commande(LigneDeCommande("A", "X", 10), LigneDeCommande("A", "Y", 20))

        with pytest.raises(LigneEnDouble):
            commande.modifier_ligne(1, depot_id="X", quantité_kg=99)

        assert commande.lignes[1].depot_id == "Y"
        assert commande.lignes[1].quantité_kg == 20

    def test_modifier_la_quantité(self):
        commande = créer_commande(LigneDeCommande("A", "X", 10))
        commande.modifier_ligne(0, quantité_kg="12.5")
        assert commande.lignes[0].quantité_kg == Decimal("12.5")

    def test_quantité_négative_refusée(self):
        with pytest.raises(ValueError):
            LigneDeCommande("A", "X", -5)

        commande = créer_commande(LigneDeCommande("A", "X", 10, prix_unitaire=3))
        with pytest.raises(ValueError):
            commande.modifier_ligne(0, prix_unitaire=4, quantité_kg=-1)

        assert commande.lignes[0].quantité_kg == 10
        assert commande.lignes[0].prix_unitaire == 3

    def test_changer_le_colisage_recalcule_les_cartons_alloués(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100, kg_par_carton=20))
        commande.remplacer_cargos([Cargo(articles=[ArticleAlloué("A", "X", 55)])])
        assert commande.cargos[0].articles[0].quantité_carton == 3

        commande.modifier_ligne(0, kg_par_carton=10)

        assert commande.cargos[0].articles[0].quantité_carton == 6
        event = commande.événements[-1]
        assert isinstance(event, events.AllocationsEnregistrées)
        assert event.allocations[0][-1] == 6

    def test_index_inconnu(self):
        commande = créer_commande(LigneDeCommande("A", "X", 10))
        with pytest.raises(LigneInconnue):
            commande.supprimer_ligne(3)
        with pytest.raises(LigneInconnue):
            commande.modifier_ligne(-1, quantité_kg=5)

    def test_commande_livrée_verrouillée(self):
        commande = créer_commande(LigneDeCommande("A", "X", 10))
        commande.marquer_livrée()

        with pytest.raises(CommandeVerrouillée):
            commande.ajouter_ligne(LigneDeCommande("B", "X", 10))
        with pytest.raises(CommandeVerrouillée):
            commande.modifier_ligne(0, quantité_kg=5)
        with pytest.raises(CommandeVerrouillée):
            commande.supprimer_ligne(0)


class TestCommandeTotaux:
    def test_prix_total(self):
        commande = créer_commande(
            LigneDeCommande("A", "X", 100, prix_unitaire=2),
            LigneDeCommande("B", "X", 50, prix_unitaire=3),
        )
        assert commande.prix_total == Decimal("350")

    @pytest.mark.parametrize(
        "payé, statut",
        [
            (0, StatutPaiement.NON_PAYE),
            (100, StatutPaiement.PARTIELLEMENT_PAYE),
            (200, StatutPaiement.PAYE),
            (250, StatutPaiement.PAYE),
        ],
    )
    def test_statut_de_paiement(self, payé, statut):
        commande = Commande("CMD-001", montant_payé=payé)
        commande.ajouter_ligne(LigneDeCommande("A", "X", 100, prix_unitaire=2))
        assert commande.statut_paiement is statut

    def test_commande_vide_non_payée(self):
        assert Commande("CMD-001", montant_payé=10).statut_paiement is StatutPaiement.NON_PAYE


class TestCommandeEnTête:
    def test_commande_locale_sans_champs_export(self):
        commande = Commande(
            "CMD-001", type_commande="LOCAL", numéro_booking="BK-1", destination="Vigo"
        )
        assert commande.type_commande is TypeCommande.LOCAL
        assert commande.numéro_booking == ""
        assert commande.destination == ""

    def test_toujours_au_moins_un_cargo(self):
        commande = Commande("CMD-001")
        assert len(commande.cargos) == 1

        commande.remplacer_cargos([])
        assert len(commande.cargos) == 1

    def test_remplacer_cargos_émet_un_event(self):
        commande = Commande("CMD-001")
        commande.remplacer_cargos([Cargo(nom="MSC", no_conteneur="MSCU001")])

        assert isinstance(commande.événements[-1], events.AllocationsEnregistrées)
        assert commande.numéro_version == 1


class TestSoumission:
    def test_sans_problème_soumise_directement(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))

        commande.demander_soumission([])

        assert commande.statut_soumission is StatutSoumission.SOUMISE
        assert commande.lignes[0].quantité_soumise_kg == 100
        assert isinstance(commande.événements[-1], events.CommandeSoumise)

    def test_avec_problèmes_attend_confirmation(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))

        commande.demander_soumission([problème("A", "X", 100)])

        assert commande.statut_soumission is StatutSoumission.EN_ATTENTE_CONFIRMATION
        assert commande.lignes[0].quantité_soumise_kg is None
        assert commande.événements == []

    def test_confirmer_enregistre_les_quantités_manquantes(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100), LigneDeCommande("B", "X", 50))
        commande.demander_soumission([problème("A", "X", 30)])

        commande.confirmer_soumission([problème("A", "X", 30)])

        assert commande.statut_soumission is StatutSoumission.QUANTITE_MANQUANTE
        assert commande.lignes[0].quantité_manquante_kg == 30
        assert commande.lignes[1].quantité_manquante_kg == 0
        assert events.QuantitéManquanteSignalée(
            référence="CMD-001",
            article_id="A",
            depot_id="X",
            libellé_article="Article A",
            libellé_depot="Dépôt X",
            quantité_manquante_kg=Decimal(30),
        ) in commande.événements

    def test_annuler_revient_au_brouillon(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))
        commande.demander_soumission([problème("A", "X", 100)])

        commande.annuler_soumission()

        assert commande.statut_soumission is StatutSoumission.BROUILLON
        assert not commande.déjà_soumise

    def test_confirmer_sans_attente_est_refusé(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))
        with pytest.raises(TransitionInvalide):
            commande.confirmer_soumission([])

    def test_double_demande_refusée(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))
        commande.demander_soumission([problème("A", "X", 100)])
        with pytest.raises(TransitionInvalide):
            commande.demander_soumission([])

    def test_quantités_initiales_après_soumission(self):
        commande = créer_commande(LigneDeCommande("A", "X", 100))
        assert commande.quantités_initiales() is None

        commande.demander_soumission([])
        commande.modifier_ligne(0, quantité_kg=150)

        assert commande.quantités_initiales() == {("A", "X"): Decimal(100)}
