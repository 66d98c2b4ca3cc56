FANTASY_LEAGUE_RULES = {
    "selection": {
        "drivers_per_round": 2,     # main + reserve, drawn from one shared rotation
        "teams_per_round": 1,
        # Used only when a season has no catalog rows yet
        "default_driver_pool_size": 20,
        "default_team_pool_size": 10,
        "none_sentinel": "None",
    },
    "scoring": {
        "grand_prix": {
            "finish_points": {
                1: 25, 2: 18, 3: 15, 4: 12, 5: 10, 6: 8, 7: 6, 8: 4, 9: 2, 10: 1
            },
            "11_to_20": 0,
        },
        "sprint_race": {
            "finish_points": {
                1: 8, 2: 7, 3: 6, 4: 5, 5: 4, 6: 3, 7: 2, 8: 1
            },
            "9_to_20": 0,
        },
        # Position tokens that mean the driver was classified without points
        "status_tokens": {
            "dnf": "did_not_finish",
            "dns": "did_not_start",
            "dsq": "disqualified",
            "dq": "disqualified",
        },
    },
    "cards": {
        # Driver cards hit the active driver (the reserve when it substituted a DNS)
        "multiply": {"default_value": 2},
        "flat_bonus": {"default_value": 3},
        # Team card: bonus per podium car of the chosen team
        "podium": {"points_per_podium": 8, "max_points": 16},
        "position_adjust": {"default_value": 1},
        # Driver conditions: top5, top10, bottom5, ahead_of_teammate.
        # Team conditions: both_top5, both_top10, both_outside_points,
        # both_bottom5, one_last_place, sponsors.
        "conditional_bonus": {"default_value": 5, "sponsors_zero": 5, "sponsors_one": 1},
        "applies_on_sprint_weekends": False,
    },
    "lifecycle": {
        "selection_lock": "picks lock at the start of qualifying",
        "auto_assignment": "after the lock, empty or incomplete picks get the next available drivers and team",
    },
}
