"""
Default roster master data

Loaded into a school by scripts/seed_roster.py. Duties reference the other
catalogs by code.
"""

ROSTER_TYPES = [
    {"code": "TEACHING", "name": "Teaching", "description": "Subject teaching assignments", "color": "#3B82F6"},
    {"code": "CLASS_TEACHER", "name": "Class Teacher", "description": "Class teacher responsibilities", "color": "#8B5CF6"},
    {"code": "DUTY", "name": "General Duty", "description": "Daily operational duties", "color": "#F59E0B"},
    {"code": "EXAM_DUTY", "name": "Exam Duty", "description": "Examination supervision", "color": "#EF4444"},
    {"code": "EVENT", "name": "Event", "description": "Event coordination duties", "color": "#10B981"},
    {"code": "TRANSPORT", "name": "Transport", "description": "Bus/transport supervision", "color": "#6366F1"},
    {"code": "STUDENT_LEADERSHIP", "name": "Student Leadership", "description": "Student leadership roles", "color": "#EC4899"},
]

DUTY_CATEGORIES = [
    {"code": "ACADEMIC", "name": "Academic", "color": "#3B82F6", "description": "Academic related duties", "display_order": 1},
    {"code": "OPERATIONAL", "name": "Operational", "color": "#F59E0B", "description": "Daily operational duties", "display_order": 2},
    {"code": "STUDENT_LEADERSHIP", "name": "Student Leadership", "color": "#8B5CF6", "description": "Student leadership roles", "display_order": 3},
    {"code": "EVENT", "name": "Event", "color": "#10B981", "description": "Event coordination", "display_order": 4},
    {"code": "TRANSPORT", "name": "Transport", "color": "#06B6D4", "description": "Transport supervision", "display_order": 5},
    {"code": "EXAM", "name": "Exam", "color": "#EF4444", "description": "Examination duties", "display_order": 6},
    {"code": "SPORTS", "name": "Sports", "color": "#14B8A6", "description": "Sports activities", "display_order": 7},
    {"code": "LIBRARY", "name": "Library", "color": "#A855F7", "description": "Library duties", "display_order": 8},
    {"code": "DISCIPLINE", "name": "Discipline", "color": "#F97316", "description": "Discipline committee", "display_order": 9},
    {"code": "OTHER", "name": "Other", "color": "#6B7280", "description": "Other duties", "display_order": 10},
]

TIME_SLOTS = [
    {"code": "MORNING_GATE", "name": "Morning Gate Duty", "start_time": "07:30", "end_time": "08:15", "display_order": 1},
    {"code": "ASSEMBLY", "name": "Assembly/Prayer", "start_time": "08:15", "end_time": "08:45", "display_order": 2},
    {"code": "FIRST_HALF", "name": "First Half", "start_time": "08:45", "end_time": "12:00", "display_order": 3},
    {"code": "RECESS", "name": "Recess/Lunch Break", "start_time": "12:00", "end_time": "12:45", "display_order": 4},
    {"code": "SECOND_HALF", "name": "Second Half", "start_time": "12:45", "end_time": "15:00", "display_order": 5},
    {"code": "DISPERSAL", "name": "Dispersal Duty", "start_time": "15:00", "end_time": "15:30", "display_order": 6},
    {"code": "AFTER_SCHOOL", "name": "After School", "start_time": "15:30", "end_time": "17:00", "display_order": 7},
]

LOCATIONS = [
    {"code": "MAIN_GATE", "name": "Main Gate", "type": "gate"},
    {"code": "BACK_GATE", "name": "Back Gate", "type": "gate"},
    {"code": "ASSEMBLY_GROUND", "name": "Assembly Ground", "type": "ground"},
    {"code": "PLAYGROUND", "name": "Playground", "type": "ground"},
    {"code": "CORRIDOR_A", "name": "Corridor A (Primary)", "type": "corridor"},
    {"code": "CORRIDOR_B", "name": "Corridor B (Secondary)", "type": "corridor"},
    {"code": "CAFETERIA", "name": "Cafeteria", "type": "cafeteria"},
    {"code": "LIBRARY", "name": "Library", "type": "library"},
    {"code": "COMPUTER_LAB", "name": "Computer Lab", "type": "lab"},
    {"code": "SCIENCE_LAB", "name": "Science Lab", "type": "lab"},
    {"code": "STAFF_ROOM", "name": "Staff Room", "type": "office"},
    {"code": "PRINCIPAL_OFFICE", "name": "Principal Office", "type": "office"},
    {"code": "BUS_AREA", "name": "Bus Parking Area", "type": "other"},
]

DUTY_ROLES = [
    {"code": "COORDINATOR", "name": "Coordinator", "description": "Overall duty coordinator", "priority": 1},
    {"code": "SUPERVISOR", "name": "Supervisor", "description": "Supervises assigned area/students", "priority": 2},
    {"code": "INCHARGE", "name": "In-Charge", "description": "Responsible for specific task", "priority": 3},
    {"code": "ASSISTANT", "name": "Assistant", "description": "Assists the in-charge", "priority": 4},
    {"code": "VOLUNTEER", "name": "Volunteer", "description": "Volunteer helper", "priority": 5},
    {"code": "MONITOR", "name": "Monitor", "description": "Class/Section monitor", "priority": 6},
    {"code": "CAPTAIN", "name": "Captain", "description": "House/Team captain", "priority": 7},
    {"code": "PREFECT", "name": "Prefect", "description": "School prefect", "priority": 8},
]

# roster_type / time_slot / location / category are catalog codes
DUTIES = [
    {
        "code": "MORNING_GATE_DUTY", "name": "Morning Gate Duty", "category": "operational",
        "roster_type": "DUTY", "allowed_assignee_kinds": ["teacher", "staff"], "risk_level": "low",
        "time_slot": "MORNING_GATE", "location": "MAIN_GATE", "min_assignees": 2, "max_assignees": 4,
        "instructions": "Monitor student entry, check uniforms, ensure safety",
    },
    {
        "code": "PRAYER_DUTY", "name": "Prayer/Assembly Duty", "category": "operational",
        "roster_type": "DUTY", "allowed_assignee_kinds": ["teacher"], "risk_level": "low",
        "time_slot": "ASSEMBLY", "location": "ASSEMBLY_GROUND", "min_assignees": 2, "max_assignees": 6,
        "instructions": "Conduct morning assembly, lead prayer, make announcements",
    },
    {
        "code": "RECESS_DUTY", "name": "Recess Supervision", "category": "operational",
        "roster_type": "DUTY", "allowed_assignee_kinds": ["teacher", "staff"], "risk_level": "medium",
        "time_slot": "RECESS", "location": "PLAYGROUND", "min_assignees": 3, "max_assignees": 6,
        "instructions": "Supervise students during break, ensure safety in playground",
    },
    {
        "code": "DISPERSAL_DUTY", "name": "Dispersal Duty", "category": "operational",
        "roster_type": "DUTY", "allowed_assignee_kinds": ["teacher", "staff"], "risk_level": "medium",
        "time_slot": "DISPERSAL", "location": "MAIN_GATE", "min_assignees": 2, "max_assignees": 4,
        "instructions": "Monitor safe departure of students, manage parent pickup",
    },
    {
        "code": "BUS_DUTY", "name": "Bus Supervision", "category": "transport",
        "roster_type": "TRANSPORT", "allowed_assignee_kinds": ["teacher", "staff"], "risk_level": "medium",
        "time_slot": "DISPERSAL", "location": "BUS_AREA", "min_assignees": 1, "max_assignees": 3,
        "instructions": "Ensure safe boarding/deboarding from school buses",
    },
    {
        "code": "CORRIDOR_DUTY", "name": "Corridor Supervision", "category": "operational",
        "roster_type": "DUTY", "allowed_assignee_kinds": ["teacher", "staff"], "risk_level": "low",
        "min_assignees": 1, "max_assignees": 2,
        "instructions": "Monitor corridors during class change",
    },
    {
        "code": "EXAM_INVIGILATION", "name": "Exam Invigilation", "category": "exam",
        "roster_type": "EXAM_DUTY", "allowed_assignee_kinds": ["teacher"], "risk_level": "high",
        "min_assignees": 1, "max_assignees": 2,
        "instructions": "Supervise examination hall, maintain exam integrity",
    },
    {
        "code": "CLASS_MONITOR", "name": "Class Monitor", "category": "student_leadership",
        "roster_type": "STUDENT_LEADERSHIP", "allowed_assignee_kinds": ["student"], "risk_level": "low",
        "supervisor_required": True, "min_assignees": 1, "max_assignees": 2, "max_per_week_student": 2,
        "instructions": "Maintain class discipline, assist teachers",
    },
    {
        "code": "HOUSE_CAPTAIN", "name": "House Captain", "category": "student_leadership",
        "roster_type": "STUDENT_LEADERSHIP", "allowed_assignee_kinds": ["student"], "risk_level": "low",
        "supervisor_required": True, "min_assignees": 1, "max_assignees": 1, "max_per_week_student": 2,
        "instructions": "Lead house activities, coordinate house events",
    },
    {
        "code": "LIBRARY_MONITOR", "name": "Library Monitor", "category": "student_leadership",
        "roster_type": "STUDENT_LEADERSHIP", "allowed_assignee_kinds": ["student"], "risk_level": "low",
        "supervisor_required": True, "location": "LIBRARY", "min_assignees": 1, "max_assignees": 2,
        "max_per_week_student": 2,
        "instructions": "Assist librarian, maintain book records",
    },
    {
        "code": "EVENT_VOLUNTEER", "name": "Event Volunteer", "category": "event",
        "roster_type": "EVENT", "allowed_assignee_kinds": ["teacher", "staff", "student"], "risk_level": "low",
        "supervisor_required": True, "min_assignees": 5, "max_assignees": 20,
        "instructions": "Assist in school events and functions",
    },
]

# duty category enum -> category catalog code
CATEGORY_CODES = {
    "academic": "ACADEMIC",
    "operational": "OPERATIONAL",
    "student_leadership": "STUDENT_LEADERSHIP",
    "event": "EVENT",
    "transport": "TRANSPORT",
    "exam": "EXAM",
}
