"""
Point d'entrée Flask.

L'API Flask est un thin adapter : elle se contente de
convertir les requêtes HTTP en commands, les envoie au
message bus, et convertit les résultats en réponses HTTP.

L'API ne contient aucune logique métier.
"""

from __future__ import annotations

import dataclasses
import logging

from flask import Flask, jsonify, request

from cargaison import config
from cargaison.domain import commands, model
from cargaison.service_layer import bootstrap, handlers
from cargaison.views import views

logging.basicConfig(level=config.get_log_level())

app = Flask(__name__)
bus = None


def get_bus():
    """Message bus de l'application, construit au premier appel."""
    global bus
    if bus is None:
        bus = bootstrap.bootstrap()
    return bus


# --- Traduction des erreurs du domaine ---


@app.errorhandler(handlers.CommandeInconnue)
@app.errorhandler(model.LigneInconnue)
def introuvable(e):
    return jsonify({"message": str(e)}), 404

@app.errorhandler(model.LigneEnDouble)
def ligne_en_double(e):
    existante = e.ligne_existante
    return jsonify({
        "message": str(e),
        "ligne_existante": {
            "index": e.index_existant,
            "article_id": existante.article_id,
            "depot_id": existante.depot_id,
            "article": existante.libellé_article_ou_id,
            "depot": existante.libellé_depot_ou_id,
        },
    }), 400


@app.errorhandler(model.AllocationInvalide)
def allocation_invalide(e):
    return jsonify({
        "message": str(e),
        "erreurs": [
            {
                "article": err.libellé_article,
                "depot": err.libellé_depot,
                "quantite_commandee_kg": err.quantité_commandée_kg,
                "quantite_allouee_kg": err.quantité_allouée_kg,
                "excedent_kg": err.excédent_kg,
            }
            for err in e.erreurs
        ],
    }), 400


@app.errorhandler(handlers.CommandeExistante)
@app.errorhandler(model.CommandeVerrouillée)
@app.errorhandler(model.TransitionInvalide)
@app.errorhandler(ValueError)
def requête_refusée(e):
    return jsonify({"message": str(e)}), 400


def _problèmes(problèmes) -> list[dict]:
    return [dict(dataclasses.asdict(p), message=p.message) for p in problèmes]


# --- Commandes ---


@app.route("/commandes", methods=["POST"])
def créer_commande_endpoint():
    """
    POST /commandes
    Body JSON : { reference, currency, orderType, items: [...], cargo: [...] }
    """
    référence = get_bus().handle(commands.CréerCommande(données=request.json)).pop(0)
    return jsonify({"reference": référence}), 201


@app.route("/commandes/<reference>/lignes", methods=["POST"])
def ajouter_ligne_endpoint(reference: str):
    data = request.json
    cmd = commands.AjouterLigne(
        référence=reference,
        article_id=data["articleId"],
        depot_id=data["depotId"],
        quantité_kg=data.get("orderedQuantityKg", 0),
        prix_unitaire=data.get("unitPrice", 0),
        kg_par_carton=data.get("kgPerCarton"),
        libellé_article=data.get("articleLabel"),
        libellé_depot=data.get("depotLabel"),
    )
    index = get_bus().handle(cmd).pop(0)
    return jsonify({"index": index}), 201


@app.route("/commandes/<reference>/lignes/<int:index>", methods=["PUT"])
def modifier_ligne_endpoint(reference: str, index: int):
    data = request.json
    get_bus().handle(
        commands.ModifierLigne(
            référence=reference,
            index=index,
            article_id=data.get("articleId"),
            depot_id=data.get("depotId"),
            quantité_kg=data.get("orderedQuantityKg"),
            prix_unitaire=data.get("unitPrice"),
            kg_par_carton=data.get("kgPerCarton"),
            libellé_article=data.get("articleLabel"),
            libellé_depot=data.get("depotLabel"),
        )
    )
    return "OK", 200


@app.route("/commandes/<reference>/lignes/<int:index>", methods=["DELETE"])
def supprimer_ligne_endpoint(reference: str, index: int):
    get_bus().handle(commands.SupprimerLigne(référence=reference, index=index))
    return "OK", 200


# --- Soumission ---


@app.route("/commandes/<reference>/soumettre", methods=["POST"])
def soumettre_endpoint(reference: str):
    """
    Soumet la commande. 201 si elle part directement ; 202 si des
    quantités manquent et qu'une confirmation est attendue.
    """
    problèmes = get_bus().handle(commands.SoumettreCommande(référence=reference)).pop(0)
    if problèmes:
        return jsonify({
            "statut": model.StatutSoumission.EN_ATTENTE_CONFIRMATION.value,
            "problemes": _problèmes(problèmes),
        }), 202
    return jsonify({"statut": model.StatutSoumission.SOUMISE.value}), 201


@app.route("/commandes/<reference>/confirmer", methods=["POST"])
def confirmer_endpoint(reference: str):
    problèmes = get_bus().handle(commands.ConfirmerSoumission(référence=reference)).pop(0)
    statut = model.StatutSoumission.QUANTITE_MANQUANTE if problèmes else model.StatutSoumission.SOUMISE
    return jsonify({"statut": statut.value, "problemes": _problèmes(problèmes)}), 201


@app.route("/commandes/<reference>/annuler", methods=["POST"])
def annuler_endpoint(reference: str):
    get_bus().handle(commands.AnnulerSoumission(référence=reference))
    return jsonify({"statut": model.StatutSoumission.BROUILLON.value}), 200


@app.route("/commandes/<reference>/livrer", methods=["POST"])
def livrer_endpoint(reference: str):
    get_bus().handle(commands.MarquerLivrée(référence=reference))
    return "OK", 200


# --- Allocation par cargo ---


@app.route("/commandes/<reference>/allocations", methods=["POST"])
def enregistrer_allocations_endpoint(reference: str):
    """
    POST /commandes/<reference>/allocations
    Body JSON : { cargo: [ { carrierName, containerNumber, allocatedItems: [...] } ] }

    Tout ou rien : 400 avec la liste complète des erreurs si une
    ligne est sur-allouée.
    """
    get_bus().handle(
        commands.EnregistrerAllocations(référence=reference, cargos=request.json["cargo"])
    )
    return "OK", 201


@app.route("/commandes/<reference>/allocations", methods=["GET"])
def allocations_view_endpoint(reference: str):
    result = views.allocations(reference, get_bus().uow)
    if not result:
        return "not found", 404
    return jsonify(result), 200


@app.route("/commandes/<reference>/disponible", methods=["GET"])
def disponible_endpoint(reference: str):
    """GET /commandes/<reference>/disponible?article=...&depot=..."""
    result = views.disponible(
        reference, request.args["article"], request.args["depot"], get_bus().uow
    )
    return jsonify(result), 200


@app.route("/commandes/<reference>/documents", methods=["GET"])
def documents_endpoint(reference: str):
    return jsonify(views.documents_expédition(reference, get_bus().uow)), 200


@app.route("/commandes/<reference>/quantites-manquantes", methods=["GET"])
def quantités_manquantes_endpoint(reference: str):
    return jsonify(views.quantités_manquantes(reference, get_bus().uow)), 200


@app.route("/commandes/<reference>/options", methods=["GET"])
def options_endpoint(reference: str):
    return jsonify(views.options_cargo(reference, get_bus().uow)), 200


@app.route("/commandes/<reference>/options", methods=["PUT"])
def enregistrer_options_endpoint(reference: str):
    data = request.json
    get_bus().handle(
        commands.EnregistrerOptionsCargo(
            référence=reference,
            no_conteneur=data.get("containerNumber", ""),
            no_plomb=data.get("sealNumber", ""),
            numéro_lot=data.get("batchNumber", ""),
            date_production=data.get("productionDate", "MAY 2025"),
            date_expiration=data.get("expiryDate", "NOVEMBER 2026"),
        )
    )
    return "OK", 200
