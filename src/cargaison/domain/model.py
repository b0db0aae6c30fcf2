"""
Modèle de domaine des commandes export et de leur chargement.

Une Commande (agrégat racine) regroupe des LigneDeCommande
(article, dépôt, quantité commandée, prix) et des Cargo (conteneurs
physiques). Chaque Cargo contient des ArticleAlloué : la part d'une
ligne de commande chargée dans ce conteneur.

Les règles de répartition entre conteneurs sont dans
`allocation.py`, l'évaluation du stock dans `suffisance.py`.
"""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from cargaison.domain import conversions, doublons, events
from cargaison.domain.conversions import Nombre, en_décimal, en_kg

if TYPE_CHECKING:
    from cargaison.domain.suffisance import ProblèmeStock

Clé = tuple[str, str]


# --- Exceptions ---


class QuantitéDépasseDisponible(Exception):
    """
    Levée par le contrôle interactif quand une quantité allouée
    dépasserait le reliquat de la ligne de commande.

    Porte le maximum autorisé (kg et cartons) pour que l'appelant
    puisse l'afficher à l'utilisateur. Aucun état n'a été modifié.
    """

    def __init__(self, article_id: Optional[str], depot_id: Optional[str],
                 max_kg: Decimal, max_cartons: int):
        self.article_id = article_id
        self.depot_id = depot_id
        self.max_kg = max_kg
        self.max_cartons = max_cartons
        super().__init__(
            f"Quantité maximale disponible : {max_kg}kg ({max_cartons} cartons)"
        )


class LigneEnDouble(Exception):
    """Levée quand une ligne (article, dépôt) existe déjà sur la commande."""

    def __init__(self, ligne_existante: LigneDeCommande, index_existant: int):
        self.ligne_existante = ligne_existante
        self.index_existant = index_existant
        super().__init__(
            f"L'article {ligne_existante.libellé_article_ou_id} existe déjà "
            f"pour le dépôt {ligne_existante.libellé_depot_ou_id} "
            f"(ligne {index_existant + 1}) : modifiez la ligne existante"
        )


class AllocationInvalide(Exception):
    """
    Levée à l'enregistrement quand au moins une ligne est sur-allouée.

    Contient toutes les erreurs (pas seulement la première) :
    l'enregistrement est bloqué en entier.
    """

    def __init__(self, erreurs: list):
        self.erreurs = erreurs
        détail = "\n".join(e.message for e in erreurs)
        super().__init__(f"Erreurs d'allocation :\n{détail}")


class LigneInconnue(Exception):
    """Ligne absente de la commande (par index ou par couple article, dépôt)."""
    pass


class CommandeVerrouillée(Exception):
    """Les lignes d'une commande livrée ne sont plus modifiables."""
    pass


class TransitionInvalide(Exception):
    """Transition de soumission impossible depuis l'état courant."""
    pass


# --- Énumérations ---


class TypeCommande(str, enum.Enum):
    EXPORT = "EXPORT"
    LOCAL = "LOCAL"


class StatutBonDeCommande(str, enum.Enum):
    EN_COURS = "EN_COURS"
    LIVREE = "LIVREE"


class StatutPaiement(str, enum.Enum):
    NON_PAYE = "NON_PAYE"
    PARTIELLEMENT_PAYE = "PARTIELLEMENT_PAYE"
    PAYE = "PAYE"


class StatutSoumission(str, enum.Enum):
    BROUILLON = "BROUILLON"
    EN_ATTENTE_CONFIRMATION = "EN_ATTENTE_CONFIRMATION"
    SOUMISE = "SOUMISE"
    QUANTITE_MANQUANTE = "QUANTITE_MANQUANTE"


# --- Entités ---


class LigneDeCommande:
    """
    Une ligne de commande : un article pris dans un dépôt.

    L'identité métier est le couple (article_id, depot_id) :
    une commande ne peut pas contenir deux lignes de même clé.
    """

    def __init__(
        self,
        article_id: Optional[str],
        depot_id: Optional[str],
        quantité_kg: Nombre = 0,
        prix_unitaire: Nombre = 0,
        kg_par_carton: Optional[Nombre] = None,
        libellé_article: Optional[str] = None,
        libellé_depot: Optional[str] = None,
    ):
        self.article_id = article_id
        self.depot_id = depot_id
        self.quantité_kg = en_kg(quantité_kg)
        self.prix_unitaire = en_décimal(prix_unitaire)
        self.kg_par_carton = None if kg_par_carton is None else en_kg(kg_par_carton)
        self.libellé_article = libellé_article
        self.libellé_depot = libellé_depot
        # Dernière quantité soumise (None tant que la commande n'a jamais été soumise)
        self.quantité_soumise_kg: Optional[Decimal] = None
        self.quantité_manquante_kg = Decimal("0")

    def __repr__(self) -> str:
        return f"<LigneDeCommande {self.article_id}/{self.depot_id} {self.quantité_kg}kg>"

    @property
    def clé(self) -> Clé:
        return (self.article_id, self.depot_id)

    @property
    def kg_carton(self) -> Decimal:
        return conversions.kg_par_carton(self.kg_par_carton)

    @property
    def quantité_carton(self) -> int:
        return conversions.cartons_pour_kg(self.quantité_kg, self.kg_carton)

    @property
    def prix_total(self) -> Decimal:
        return self.quantité_kg * self.prix_unitaire

    def copier(self) -> LigneDeCommande:
        copie = LigneDeCommande(
            article_id=self.article_id,
            depot_id=self.depot_id,
            quantité_kg=self.quantité_kg,
            prix_unitaire=self.prix_unitaire,
            kg_par_carton=self.kg_par_carton,
            libellé_article=self.libellé_article,
            libellé_depot=self.libellé_depot,
        )
        copie.quantité_soumise_kg = self.quantité_soumise_kg
        copie.quantité_manquante_kg = self.quantité_manquante_kg
        return copie

    @property
    def libellé_article_ou_id(self) -> str:
        return self.libellé_article or f"Article {self.article_id}"

    @property
    def libellé_depot_ou_id(self) -> str:
        return self.libellé_depot or f"Dépôt {self.depot_id}"


class ArticleAlloué:
    """
    Part d'une ligne de commande chargée dans un Cargo.

    `quantité_carton` est dérivée de `quantité_allouée_kg` ; elle n'est
    recalculée que par le MoteurAllocation et par la Commande quand
    ses cargos ou le colisage d'une ligne changent. Les autres champs
    (conteneur, plomb, lot, dates) sont des métadonnées d'expédition
    sans effet sur les quantités.
    """

    def __init__(
        self,
        article_id: Optional[str] = None,
        depot_id: Optional[str] = None,
        quantité_allouée_kg: Nombre = 0,
        quantité_carton: int = 0,
        no_conteneur: str = "",
        no_plomb: str = "",
        numéro_lot: str = "",
        date_production: str = "",
        date_expiration: str = "",
    ):
        self.article_id = article_id
        self.depot_id = depot_id
        self.quantité_allouée_kg = en_kg(quantité_allouée_kg)
        self.quantité_carton = quantité_carton
        self.no_conteneur = no_conteneur
        self.no_plomb = no_plomb
        self.numéro_lot = numéro_lot
        self.date_production = date_production
        self.date_expiration = date_expiration

    def __repr__(self) -> str:
        return f"<ArticleAlloué {self.article_id}/{self.depot_id} {self.quantité_allouée_kg}kg>"

    @property
    def clé(self) -> Clé:
        return (self.article_id, self.depot_id)

    @property
    def est_affecté(self) -> bool:
        """Vrai si l'article et le dépôt sont renseignés."""
        return bool(self.article_id) and bool(self.depot_id)

    def copier(self) -> ArticleAlloué:
        return ArticleAlloué(
            article_id=self.article_id,
            depot_id=self.depot_id,
            quantité_allouée_kg=self.quantité_allouée_kg,
            quantité_carton=self.quantité_carton,
            no_conteneur=self.no_conteneur,
            no_plomb=self.no_plomb,
            numéro_lot=self.numéro_lot,
            date_production=self.date_production,
            date_expiration=self.date_expiration,
        )


class Cargo:
    """Un conteneur physique et les articles qui y sont chargés."""

    def __init__(
        self,
        nom: str = "",
        no_conteneur: str = "",
        no_plomb: str = "",
        poids_carton: Optional[Nombre] = None,
        tare_conteneur: Optional[Nombre] = None,
        articles: Optional[list[ArticleAlloué]] = None,
    ):
        self.nom = nom
        self.no_conteneur = no_conteneur
        self.no_plomb = no_plomb
        # Poids d'un carton vide ; surcharge celui de la commande
        self.poids_carton = None if poids_carton is None else en_kg(poids_carton)
        self.tare_conteneur = None if tare_conteneur is None else en_kg(tare_conteneur)
        self.articles = articles or []

    def __repr__(self) -> str:
        return f"<Cargo {self.nom} {self.no_conteneur}>"

    def copier(self, articles: Optional[list[ArticleAlloué]] = None) -> Cargo:
        if articles is None:
            articles = [a.copier() for a in self.articles]
        return Cargo(
            nom=self.nom,
            no_conteneur=self.no_conteneur,
            no_plomb=self.no_plomb,
            poids_carton=self.poids_carton,
            tare_conteneur=self.tare_conteneur,
            articles=articles,
        )


class Commande:
    """
    Agrégat racine : une commande client, export ou locale.

    Toutes les modifications de lignes passent par cet agrégat, qui
    applique le contrôle de doublons avant toute mutation et refuse
    les modifications une fois la commande livrée.
    """

    def __init__(
        self,
        référence: str,
        devise: str = "EUR",
        type_commande: TypeCommande = TypeCommande.EXPORT,
        client: str = "",
        numéro_booking: str = "",
        destination: str = "",
        poids_carton: Optional[Nombre] = None,
        montant_payé: Nombre = 0,
        lignes: Optional[list[LigneDeCommande]] = None,
        cargos: Optional[list[Cargo]] = None,
        numéro_version: int = 0,
    ):
        self.référence = référence
        self.devise = devise
        self.type_commande = TypeCommande(type_commande)
        self.client = client
        # Champs réservés à l'export
        if self.type_commande is TypeCommande.LOCAL:
            numéro_booking, destination = "", ""
        self.numéro_booking = numéro_booking
        self.destination = destination
        self.poids_carton = None if poids_carton is None else en_kg(poids_carton)
        self.montant_payé = en_décimal(montant_payé)
        self.statut_bon = StatutBonDeCommande.EN_COURS
        self.statut_soumission = StatutSoumission.BROUILLON
        self.lignes = lignes or []
        self.cargos = cargos or [Cargo()]
        self.numéro_version = numéro_version
        self.événements: list[events.Event] = []

    def __repr__(self) -> str:
        return f"<Commande {self.référence}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commande):
            return NotImplemented
        return self.référence == other.référence

    def __hash__(self) -> int:
        return hash(self.référence)

    def copier(self) -> Commande:
        """Copie indépendante (lignes et cargos compris), sans événements."""
        copie = Commande(
            référence=self.référence,
            devise=self.devise,
            type_commande=self.type_commande,
            client=self.client,
            numéro_booking=self.numéro_booking,
            destination=self.destination,
            poids_carton=self.poids_carton,
            montant_payé=self.montant_payé,
            lignes=[l.copier() for l in self.lignes],
            cargos=[c.copier() for c in self.cargos],
            numéro_version=self.numéro_version,
        )
        copie.statut_bon = self.statut_bon
        copie.statut_soumission = self.statut_soumission
        return copie

    # --- Totaux ---

    @property
    def prix_total(self) -> Decimal:
        return sum((ligne.prix_total for ligne in self.lignes), Decimal("0"))

    @property
    def statut_paiement(self) -> StatutPaiement:
        total = self.prix_total
        if total <= 0 or self.montant_payé <= 0:
            return StatutPaiement.NON_PAYE
        if self.montant_payé >= total:
            return StatutPaiement.PAYE
        return StatutPaiement.PARTIELLEMENT_PAYE

    @property
    def est_livrée(self) -> bool:
        return self.statut_bon is StatutBonDeCommande.LIVREE

    # --- Lignes ---

    def ligne(self, article_id: Optional[str], depot_id: Optional[str]) -> Optional[LigneDeCommande]:
        return next(
            (l for l in self.lignes if l.clé == (article_id, depot_id)),
            None,
        )

    def ajouter_ligne(self, ligne: LigneDeCommande) -> int:
        """Ajoute une ligne et retourne son index. Lève LigneEnDouble si la clé existe."""
        self._vérifier_modifiable()
        self._refuser_doublon(ligne.article_id, ligne.depot_id, sauf_index=None)
        self.lignes.append(ligne)
        return len(self.lignes) - 1

    def modifier_ligne(
        self,
        index: int,
        article_id: Optional[str] = None,
        depot_id: Optional[str] = None,
        quantité_kg: Optional[Nombre] = None,
        prix_unitaire: Optional[Nombre] = None,
        kg_par_carton: Optional[Nombre] = None,
        libellé_article: Optional[str] = None,
        libellé_depot: Optional[str] = None,
    ) -> None:
        """
        Modifie une ligne existante. Les paramètres None sont inchangés.

        Un changement d'article ou de dépôt est contrôlé contre les
        autres lignes, et les valeurs saisies sont converties, avant
        toute modification. Les cartons des articles déjà alloués sont
        ensuite recalculés avec la constante de colisage de la ligne.
        """
        self._vérifier_modifiable()
        ligne = self._ligne_à(index)
        nouvel_article = ligne.article_id if article_id is None else article_id
        nouveau_depot = ligne.depot_id if depot_id is None else depot_id
        if (nouvel_article, nouveau_depot) != ligne.clé:
            self._refuser_doublon(nouvel_article, nouveau_depot, sauf_index=index)
        quantité = ligne.quantité_kg if quantité_kg is None else en_kg(quantité_kg)
        prix = ligne.prix_unitaire if prix_unitaire is None else en_décimal(prix_unitaire)
        constante = ligne.kg_par_carton if kg_par_carton is None else en_kg(kg_par_carton)

        ligne.article_id = nouvel_article
        ligne.depot_id = nouveau_depot
        ligne.quantité_kg = quantité
        ligne.prix_unitaire = prix
        ligne.kg_par_carton = constante
        if libellé_article is not None:
            ligne.libellé_article = libellé_article
        if libellé_depot is not None:
            ligne.libellé_depot = libellé_depot
        if self._recalculer_cartons():
            self.événements.append(self._allocations_enregistrées())

    def supprimer_ligne(self, index: int) -> LigneDeCommande:
        self._vérifier_modifiable()
        self._ligne_à(index)
        return self.lignes.pop(index)

    def _ligne_à(self, index: int) -> LigneDeCommande:
        if not 0 <= index < len(self.lignes):
            raise LigneInconnue(f"Aucune ligne {index} sur la commande {self.référence}")
        return self.lignes[index]

    def _refuser_doublon(
        self, article_id: Optional[str], depot_id: Optional[str], sauf_index: Optional[int]
    ) -> None:
        trouvé = doublons.ligne_en_double(self.lignes, article_id, depot_id, sauf_index)
        if trouvé is not None:
            index, existante = trouvé
            raise LigneEnDouble(existante, index)

    def _vérifier_modifiable(self) -> None:
        if self.est_livrée:
            raise CommandeVerrouillée(
                f"La commande {self.référence} est livrée : ses articles ne sont plus modifiables"
            )

    # --- Cargos ---

    def remplacer_cargos(self, cargos: list[Cargo]) -> None:
        """
        Remplace l'ensemble des cargos par un instantané validé.

        Une commande a toujours au moins un cargo : un cargo vide
        est rétabli si l'instantané n'en contient aucun.
        """
        self.cargos = cargos or [Cargo()]
        self._recalculer_cartons()
        self.numéro_version += 1
        self.événements.append(self._allocations_enregistrées())

    def _recalculer_cartons(self) -> bool:
        """
        Aligne le nombre de cartons de chaque article alloué sur ses kg
        et sur la constante de colisage de sa ligne. Vrai si au moins
        un article a changé.
        """
        modifié = False
        for cargo in self.cargos:
            for article in cargo.articles:
                ligne = self.ligne(article.article_id, article.depot_id)
                kg_carton = ligne.kg_carton if ligne else conversions.KG_PAR_CARTON_DÉFAUT
                cartons = conversions.cartons_pour_kg(article.quantité_allouée_kg, kg_carton)
                if cartons != article.quantité_carton:
                    article.quantité_carton = cartons
                    modifié = True
        return modifié

    def _allocations_enregistrées(self) -> events.AllocationsEnregistrées:
        return events.AllocationsEnregistrées(
            référence=self.référence,
            allocations=tuple(
                (cargo.no_conteneur, article.article_id, article.depot_id,
                 article.quantité_allouée_kg, article.quantité_carton)
                for cargo in self.cargos
                for article in cargo.articles
            ),
        )

    # --- Soumission ---

    @property
    def déjà_soumise(self) -> bool:
        return any(l.quantité_soumise_kg is not None for l in self.lignes)

    def quantités_initiales(self) -> Optional[dict[Clé, Decimal]]:
        """
        Quantités de la dernière soumission, par clé (mode édition),
        ou None si la commande n'a jamais été soumise (mode création).
        """
        if not self.déjà_soumise:
            return None
        return {
            l.clé: l.quantité_soumise_kg
            for l in self.lignes
            if l.quantité_soumise_kg is not None
        }

    def demander_soumission(self, problèmes: list[ProblèmeStock]) -> None:
        """
        Première étape de la soumission.

        Sans problème de stock, la commande est soumise directement.
        Sinon elle attend une confirmation explicite de l'utilisateur.
        """
        if self.est_livrée:
            raise CommandeVerrouillée(f"La commande {self.référence} est déjà livrée")
        if self.statut_soumission is StatutSoumission.EN_ATTENTE_CONFIRMATION:
            raise TransitionInvalide(
                f"La commande {self.référence} attend déjà une confirmation"
            )
        if problèmes:
            self.statut_soumission = StatutSoumission.EN_ATTENTE_CONFIRMATION
            return
        self._enregistrer_soumission([])

    def confirmer_soumission(self, problèmes: list[ProblèmeStock]) -> None:
        """L'utilisateur accepte de soumettre malgré les quantités manquantes."""
        if self.statut_soumission is not StatutSoumission.EN_ATTENTE_CONFIRMATION:
            raise TransitionInvalide(
                f"Aucune soumission en attente pour la commande {self.référence}"
            )
        self._enregistrer_soumission(problèmes)

    def annuler_soumission(self) -> None:
        if self.statut_soumission is not StatutSoumission.EN_ATTENTE_CONFIRMATION:
            raise TransitionInvalide(
                f"Aucune soumission en attente pour la commande {self.référence}"
            )
        self.statut_soumission = StatutSoumission.BROUILLON

    def _enregistrer_soumission(self, problèmes: list[ProblèmeStock]) -> None:
        manquants = {(p.article_id, p.depot_id): p for p in problèmes}
        for ligne in self.lignes:
            problème = manquants.get(ligne.clé)
            if problème is not None:
                manquant = ligne.quantité_manquante_kg + problème.manquant_kg
            else:
                manquant = ligne.quantité_manquante_kg
            ligne.quantité_manquante_kg = min(manquant, ligne.quantité_kg)
            ligne.quantité_soumise_kg = ligne.quantité_kg
            if problème is not None:
                self.événements.append(
                    events.QuantitéManquanteSignalée(
                        référence=self.référence,
                        article_id=ligne.article_id,
                        depot_id=ligne.depot_id,
                        libellé_article=ligne.libellé_article_ou_id,
                        libellé_depot=ligne.libellé_depot_ou_id,
                        quantité_manquante_kg=problème.manquant_kg,
                    )
                )

        if any(l.quantité_manquante_kg > 0 for l in self.lignes):
            self.statut_soumission = StatutSoumission.QUANTITE_MANQUANTE
        else:
            self.statut_soumission = StatutSoumission.SOUMISE
        self.numéro_version += 1
        self.événements.append(
            events.CommandeSoumise(
                référence=self.référence,
                statut=self.statut_soumission.value,
                prix_total=self.prix_total,
            )
        )

    def marquer_livrée(self) -> None:
        self.statut_bon = StatutBonDeCommande.LIVREE
