from fastapi import APIRouter, Depends

from ..dependencies import get_reference_data_provider
from ..errors import InvalidLocation
from ..schemas import LocationView, StateLocationsResponse
from ..services.reference_data import ReferenceDataProvider
from ..services.states import state_abbreviation, state_name

router = APIRouter(tags=["locations"])


@router.get("/locations/{state}", response_model=StateLocationsResponse)
def state_locations(
    state: str,
    reference_data: ReferenceDataProvider = Depends(get_reference_data_provider),
) -> StateLocationsResponse:
    abbr = state_abbreviation(state)
    locations = reference_data.cities_in_state(state)
    if abbr is None or not locations:
        raise InvalidLocation(None, state)

    return StateLocationsResponse(
        state=state_name(abbr) or locations[0].state,
        state_abbr=abbr,
        locations=[
            LocationView(
                city=location.city,
                slug=location.city_key,
                state=location.state,
                state_abbr=location.state_abbr,
                latitude=location.latitude,
                longitude=location.longitude,
                zip_codes=sorted(location.zip_codes),
            )
            for location in locations
        ],
    )
