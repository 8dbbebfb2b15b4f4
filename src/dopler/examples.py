"""
Example decision model: a small car configurator in DOPLER CSV notation.

Covers every decision type, both range kinds, a cardinality, prefix and
postfix rules, and visibility conditions.
"""
from typing import Optional

from dopler.deserializer import DecisionModelDeserializer
from dopler.model import DecisionModel

EXAMPLE_CAR_MODEL_CSV = """\
ID;Question;Type;Range;Cardinality;Constraint/Rule;Visible/relevant if
Car;Do you want to configure a car?;Boolean;true | false;;;
Engine;Which engine type?;Enumeration;Petrol | Diesel | Electric;1:1;"if (Engine.Electric) {disallow Extras.TowBar;}";Car
Battery;Battery capacity in kWh?;Double;40 - 100;;select Extras.Heating if Battery > 80;Engine.Electric
Extras;Which extras?;Enumeration;Sunroof | TowBar | Heating;0:3;;Car
Seats;How many seats?;Double;2 - 9;;"if (Seats > 5) {Extras = Heating;}";Car
Nickname;Name for the car?;String;;;;isTaken(Car)
"""


def build_example_car_model(deserializer: Optional[DecisionModelDeserializer] = None) -> DecisionModel:
    deserializer = deserializer or DecisionModelDeserializer()
    return deserializer.deserialize(EXAMPLE_CAR_MODEL_CSV, name="Example Car Model")
