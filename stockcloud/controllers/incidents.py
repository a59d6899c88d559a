"""
Incidents Controller - read access to the incident log
"""

from flask import request
from flask_restx import Resource
from stockcloud.middleware.auth import require_auth
from stockcloud.services import IncidentLog
from stockcloud.utils.schemas import DayQuerySchema

day_schema = DayQuerySchema()


def register_incident_routes(api, namespace):
    """Register incident-related routes"""

    @namespace.route('/')
    class IncidentList(Resource):
        @api.doc('list_incidents')
        @require_auth
        def get(self):
            return IncidentLog().list_all(), 200

    @namespace.route('/<int:incident_id>')
    class IncidentDetail(Resource):
        @api.doc('get_incident')
        @require_auth
        def get(self, incident_id):
            return IncidentLog().get(incident_id), 200

    @namespace.route('/by-order/<int:order_id>')
    class IncidentsByOrder(Resource):
        @require_auth
        def get(self, order_id):
            return IncidentLog().by_order(order_id), 200

    @namespace.route('/by-movement/<int:movement_id>')
    class IncidentsByMovement(Resource):
        @require_auth
        def get(self, movement_id):
            return IncidentLog().by_movement(movement_id), 200

    @namespace.route('/by-date')
    @namespace.doc(params={'date': 'Local day, YYYY-MM-DD'})
    class IncidentsByDate(Resource):
        @require_auth
        def get(self):
            query = day_schema.load(request.args.to_dict())
            return IncidentLog().by_date(query['date']), 200

    @namespace.route('/summary')
    class IncidentSummary(Resource):
        @require_auth
        def get(self):
            """Incidents per day over the summary window"""
            return IncidentLog().summary_last_30_days(), 200
