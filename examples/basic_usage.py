"""
Basic Usage Example: Reaching Record Fields by Name

This example demonstrates the core fieldlens workflow:
1. Declare a record type with stored and computed fields
2. Read, type-check and write fields through a lens by string key
3. Observe that bad keys, bad types and computed fields are silent no-ops
4. Use generic tools (diff, patch, to_frame) that know no record shape
"""

from dataclasses import dataclass
from datetime import date, datetime

from fieldlens import Record, computed, diff, lens_for, patch, register_lens, to_frame


class Person(Record):
    """A person with a derived age."""

    name: str
    birthday: datetime

    @computed
    def age(self) -> int:
        """Age in whole years."""
        today = date.today()
        born = self.birthday.date()
        return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


# A foreign, immutable type whose fields are listed explicitly
@dataclass(frozen=True)
class Address:
    street: str
    city: str


register_lens(Address, {"street": str, "city": str})


def main() -> None:
    """Walk through lens reads and writes on a Person and an Address."""

    mary = Person(name="Mary", birthday=datetime(1970, 1, 1))
    lens = mary.lens

    # 1. Typed reads by key
    birthday = lens.get("birthday", None, as_type=datetime)
    print(f"[OK] birthday: {birthday}")
    print(f"[OK] type of 'name': {lens.type_for('name').__name__}")

    # 2. Writes reach the same record
    lens["name"] = "Mary Jane"
    print(f"[OK] renamed: {mary.name}")

    # 3. Misses never raise
    lens.set("age", 99)
    print(f"[OK] age still computed: {lens['age']}")
    print(f"[OK] unknown key gives default: {lens['unknownField', 'x']}")
    print(f"[OK] wrong type gives default: {lens.get('name', '?', as_type=int)}")

    # 4. Value-like records: the lens holds the updated copy
    home = Address(street="1 Main St", city="Springfield")
    address_lens = lens_for(home)
    applied = patch(address_lens, {"city": "Shelbyville", "zip": "12345"})
    print(f"[OK] applied {applied}; now {address_lens.value()}; original {home}")

    # 5. Generic tools work across record types
    print(f"[OK] diff: {diff(mary, Person(name='Ann', birthday=datetime(1970, 1, 1)))}")
    print(to_frame([mary, Person(name="Ann", birthday=datetime(1990, 6, 1))]))

    print("\n[SUCCESS] Lens walkthrough complete!")


if __name__ == "__main__":
    main()
