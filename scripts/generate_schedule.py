"""
Care Facility Schedule Generator

Generates a realistic one-week staff schedule CSV for trying out the
compliance checker, with a few deliberate problems mixed in
(an uncovered night, a double booking, heavy overtime).

Run: python scripts/generate_schedule.py [--days 7] [--output data/sample_schedule.csv]
"""

import argparse
import csv
import os
import random
from datetime import date, timedelta
from typing import List, Dict

# Configuration
NUM_RNS = 6
NUM_LPNS = 6
NUM_CNAS = 16
SHIFT_BLOCKS = [("07:00", "15:00"), ("15:00", "23:00"), ("23:00", "07:00")]
CNAS_PER_BLOCK = 3
UNITS = ["East Wing", "West Wing", "Memory Care"]

FIRST_NAMES = ["Emma", "James", "Olivia", "Liam", "Ava", "Noah", "Sophia", "William",
               "Isabella", "Benjamin", "Mia", "Lucas", "Charlotte", "Henry", "Amelia",
               "Ethan", "Harper", "Alexander", "Evelyn", "Daniel", "Abigail", "Matthew",
               "Grace", "Logan", "Nora", "Lily", "Hannah", "Leah", "Claire", "Ruby"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
              "Davis", "Rodriguez", "Martinez", "Wilson", "Anderson", "Taylor", "Moore",
              "Jackson", "Martin", "Lee", "White", "Harris", "Clark", "Lewis", "Walker"]

HEADER = ["Employee Name", "Role", "Date", "Start Time", "End Time", "Hours", "Employee ID", "Unit"]


def generate_staff() -> Dict[str, List[Dict]]:
    """Generate staff by role with unique names and IDs"""
    used_names = set()
    staff = {"RN": [], "LPN": [], "CNA": []}
    counts = {"RN": NUM_RNS, "LPN": NUM_LPNS, "CNA": NUM_CNAS}
    emp_number = 1

    for role, count in counts.items():
        for _ in range(count):
            while True:
                name = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"
                if name not in used_names:
                    used_names.add(name)
                    break
            staff[role].append({"name": name, "employee_id": f"E{emp_number:03d}", "role": role})
            emp_number += 1

    return staff


def generate_rows(staff: Dict[str, List[Dict]], start: date, days: int) -> List[List[str]]:
    """One RN, one LPN and several CNAs per 8-hour block, rotating staff"""
    rows = []
    rotation = {role: 0 for role in staff}

    def next_member(role):
        member = staff[role][rotation[role] % len(staff[role])]
        rotation[role] += 1
        return member

    for offset in range(days):
        shift_date = (start + timedelta(days=offset)).isoformat()
        for block_index, (begin, end) in enumerate(SHIFT_BLOCKS):
            # Problem 1: no RN on the third night
            roles = ["LPN"] + ["CNA"] * CNAS_PER_BLOCK
            if not (offset == 2 and block_index == 2):
                roles.insert(0, "RN")

            for role in roles:
                member = next_member(role)
                rows.append([member["name"], role, shift_date, begin, end, "8",
                             member["employee_id"], random.choice(UNITS)])

    # Problem 2: double booking on the first day
    rn = staff["RN"][0]
    rows.append([rn["name"], "RN", start.isoformat(), "11:00", "19:00", "8", rn["employee_id"], UNITS[0]])

    # Problem 3: a CNA picking up extra doubles all week
    cna = staff["CNA"][-1]
    for offset in range(min(days, 5)):
        rows.append([cna["name"], "CNA", (start + timedelta(days=offset)).isoformat(),
                     "07:00", "19:00", "12", cna["employee_id"], UNITS[1]])

    return rows


def print_summary(rows: List[List[str]]):
    hours_by_name = {}
    for row in rows:
        hours_by_name[row[0]] = hours_by_name.get(row[0], 0) + float(row[5])

    print(f"\n  Shifts: {len(rows)}")
    print(f"  Staff: {len(hours_by_name)}")
    over = {name: hours for name, hours in hours_by_name.items() if hours > 40}
    print(f"  Staff over 40h: {len(over)}")
    for name, hours in sorted(over.items(), key=lambda x: -x[1]):
        print(f"    - {name}: {hours:g}h")


def main():
    parser = argparse.ArgumentParser(description='Generate a sample staff schedule CSV')
    parser.add_argument('--days', type=int, default=7)
    parser.add_argument('--start', type=str, default=None, help='First date (YYYY-MM-DD), default next Monday')
    parser.add_argument('--output', type=str, default='data/sample_schedule.csv')
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args()

    random.seed(args.seed)  # For reproducibility

    if args.start:
        start = date.fromisoformat(args.start)
    else:
        today = date.today()
        start = today + timedelta(days=(7 - today.weekday()) % 7 or 7)

    print("Generating care facility schedule...")
    staff = generate_staff()
    rows = generate_rows(staff, start, args.days)

    directory = os.path.dirname(args.output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(args.output, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(HEADER)
        writer.writerows(rows)

    print(f"\n✓ Generated file: {args.output}")
    print_summary(rows)
    print(f"\nTo check it:")
    print(f"  python -m compliance_engine.cli {args.output} --capacity 60")


if __name__ == "__main__":
    main()
