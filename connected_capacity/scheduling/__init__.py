"""
scheduling/ - Staff assignment suggestions

Modules:
    travel.py          - Straight-line travel estimates
    staff_scoring.py   - Weighted staff-to-patient match scoring
    auto_assign.py     - Best-candidate suggestions for unscheduled services
"""
