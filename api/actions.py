import logging
import uuid
from flask import Blueprint, request, jsonify

from donation_data import (
    CO2_PER_DONATION, DONATION_SITES, DONATION_SITES_BY_ID, MEALS_PER_DONATION, POINTS_PER_DONATION,
    sites_by_distance,
)
from energy_data import (
    ENERGY_SAVING_ACTIONS, ENERGY_ACTIONS_BY_ID, calculate_co2, calculate_energy_points, get_energy_message,
)
from .auth import token_required
from .config import get_persistence
from .error_utils import create_error_response, handle_exception, not_found_error
from .pydantic_models import (
    ActionLoggedResponse, DonationLoggedResponse, DonationRequest, DonationSiteResponse, DonationSitesQuery,
    EnergyActionRequest, EnergyActionResponse, EnergyReadingRequest,
)

actions_bp = Blueprint('actions_bp', __name__)


@actions_bp.route('/energy', methods=['GET'])
@token_required
def list_energy_actions(user_id):
    actions = [
        EnergyActionResponse(
            actionId=a.id, name=a.name, description=a.description,
            co2SavedKg=a.co2_saved_kg, points=a.points, icon=a.icon,
        ).model_dump()
        for a in ENERGY_SAVING_ACTIONS
    ]
    return jsonify(actions), 200


@actions_bp.route('/energy', methods=['POST'])
@token_required
def log_energy_action(user_id):
    req_data = EnergyActionRequest.model_validate(request.get_json())
    action = ENERGY_ACTIONS_BY_ID.get(req_data.actionId)
    if action is None:
        return not_found_error(f"Unknown energy action '{req_data.actionId}'")

    award_id = req_data.requestId or uuid.uuid4().hex
    persistence = get_persistence()
    try:
        persistence.insert_action_log(
            user_id, 'energy',
            {'actionId': action.id, 'actionName': action.name, 'co2Saved': action.co2_saved_kg},
            action.points, log_id=award_id,
        )
    except Exception as e:
        logging.error(f"Failed to log energy action for {user_id}: {e}", exc_info=True)

    try:
        persistence.award_points(user_id, award_id, action.points, source='energy')
    except Exception as e:
        return handle_exception(e, "log_energy_action endpoint")

    response = ActionLoggedResponse(
        pointsAwarded=action.points,
        co2Kg=action.co2_saved_kg,
        message=f"{action.name} logged! Keep up the great work.",
    )
    return jsonify(response.model_dump()), 200


@actions_bp.route('/energy/reading', methods=['POST'])
@token_required
def log_energy_reading(user_id):
    """Monthly kWh reading. Points are earned only for a reduction against the previous reading."""
    req_data = EnergyReadingRequest.model_validate(request.get_json())
    persistence = get_persistence()
    try:
        previous = persistence.latest_energy_reading(user_id)
        previous_kwh = previous.get('kWh') if previous else None
        co2 = calculate_co2(req_data.kWh)
        points = calculate_energy_points(req_data.kWh, previous_kwh)
        reading_id = persistence.insert_energy_reading(user_id, req_data.kWh, co2, points)
    except Exception as e:
        logging.error(f"Failed to record energy reading for {user_id}: {e}", exc_info=True)
        return create_error_response("DATABASE_ERROR", status_code=500)

    if points > 0:
        try:
            persistence.insert_action_log(
                user_id, 'energy', {'kWh': req_data.kWh, 'co2': co2, 'previousKWh': previous_kwh},
                points, log_id=reading_id,
            )
        except Exception as e:
            logging.error(f"Failed to log energy reading action for {user_id}: {e}", exc_info=True)
        try:
            persistence.award_points(user_id, reading_id, points, source='energy')
        except Exception as e:
            return handle_exception(e, "log_energy_reading endpoint")

    response = ActionLoggedResponse(
        pointsAwarded=points,
        co2Kg=co2,
        message=get_energy_message(req_data.kWh, previous_kwh),
    )
    return jsonify(response.model_dump()), 200


@actions_bp.route('/donation/sites', methods=['GET'])
@token_required
def list_donation_sites(user_id):
    """Donation sites, nearest first when both `lat` and `lng` are given."""
    query = DonationSitesQuery.model_validate(request.args.to_dict())
    if query.lat is None or query.lng is None:
        sites = [DonationSiteResponse.from_site(site) for site in DONATION_SITES]
    else:
        sites = [
            DonationSiteResponse.from_site(site, distance)
            for site, distance in sites_by_distance(query.lat, query.lng)
        ]
    return jsonify([site.model_dump() for site in sites]), 200


@actions_bp.route('/donation', methods=['POST'])
@token_required
def log_donation(user_id):
    req_data = DonationRequest.model_validate(request.get_json())
    site = DONATION_SITES_BY_ID.get(req_data.siteId)
    if site is None:
        return not_found_error(f"Unknown donation site '{req_data.siteId}'")

    award_id = req_data.requestId or uuid.uuid4().hex
    persistence = get_persistence()
    try:
        persistence.insert_action_log(
            user_id, 'donate',
            {'siteId': site.id, 'siteName': site.name, 'siteType': site.type,
             'co2Saved': CO2_PER_DONATION, 'mealsProvided': MEALS_PER_DONATION},
            POINTS_PER_DONATION, log_id=award_id,
        )
    except Exception as e:
        logging.error(f"Failed to log donation for {user_id}: {e}", exc_info=True)

    try:
        persistence.award_points(user_id, award_id, POINTS_PER_DONATION, source='donation')
    except Exception as e:
        return handle_exception(e, "log_donation endpoint")

    logging.info(f"User {user_id} donated food at {site.name}")
    response = DonationLoggedResponse(
        pointsAwarded=POINTS_PER_DONATION,
        co2Kg=CO2_PER_DONATION,
        mealsProvided=MEALS_PER_DONATION,
        message=f"Thank you for donating to {site.name}! That's about {MEALS_PER_DONATION} meals for your community.",
    )
    return jsonify(response.model_dump()), 200
