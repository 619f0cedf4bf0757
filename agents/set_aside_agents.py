"""
Strategies for set-aside rule sets (see sim.rules.biscuits_rules).

Each decision returns the indices of the dice to take out of play. A die's
penalty is `faces - pip`: zero means it shows its top face. Dice with more
faces than `small_faces` count as big dice.
"""

from sim.game import Action

SMALL_FACES = 6


# small helpers
def find_zero_dice(roll):
    return [i for i in range(len(roll)) if roll.is_top(i)]


def find_big_zero_dice(roll, small_faces=SMALL_FACES):
    return [i for i in range(len(roll)) if roll.is_top(i) and roll.faces[i] > small_faces]


def count_big_dice(roll, small_faces=SMALL_FACES):
    return sum(1 for f in roll.faces if f > small_faces)


def find_min_penalty_die(roll):
    """First die with the lowest penalty."""
    best = 0
    for i in range(1, len(roll)):
        if roll.penalty(i) < roll.penalty(best):
            best = i
    return best


def find_big_min_die(roll):
    """Lowest penalty, ties going to the die with more faces, then to the first one."""
    return min(range(len(roll)), key=lambda i: (roll.penalty(i), -roll.faces[i]))


def prio_min_for(faces, penalty):
    return faces - 4 * penalty


def find_prio_min_die(roll):
    best_idx = 0
    best_faces = None
    best_score = None
    for i in range(len(roll)):
        score = prio_min_for(roll.faces[i], roll.penalty(i))
        if best_score is None or score > best_score or (score == best_score and roll.faces[i] > best_faces):
            best_idx = i
            best_faces = roll.faces[i]
            best_score = score
    return best_idx


class OneMinAgent:
    def __init__(self, name='one-min'):
        self.name = name

    def decide(self, view, roll):
        if len(roll) == 0:
            return Action.stop()
        return Action.roll((find_min_penalty_die(roll),))


class AllZeroOneMinAgent:
    def __init__(self, name='all-zero/one-min'):
        self.name = name

    def decide(self, view, roll):
        if len(roll) == 0:
            return Action.stop()
        zeros = find_zero_dice(roll)
        if zeros:
            return Action.roll(tuple(zeros))
        return Action.roll((find_min_penalty_die(roll),))


class AllZeroPrioMinAgent:
    """Takes every zero; otherwise prefers big dice with a low penalty."""

    def __init__(self, name='all-zero/prio-min'):
        self.name = name

    def decide(self, view, roll):
        if len(roll) == 0:
            return Action.stop()
        zeros = find_zero_dice(roll)
        if zeros:
            return Action.roll(tuple(zeros))
        return Action.roll((find_prio_min_die(roll),))


class AllZeroBigMinAgent:
    def __init__(self, name='all-zero/big-min'):
        self.name = name

    def decide(self, view, roll):
        if len(roll) == 0:
            return Action.stop()
        zeros = find_zero_dice(roll)
        if zeros:
            return Action.roll(tuple(zeros))
        return Action.roll((find_big_min_die(roll),))


class BigZeroFirstAgent:
    """
    Keeps rerolling small dice while big dice are still in play:
    - big zeros are taken first (all zeros once every big die shows zero),
    - otherwise a single zero, or all zeros when no big dice remain,
    - otherwise the big-min die.
    """

    def __init__(self, name='big-zero/one-zero/big-min', small_faces=SMALL_FACES):
        self.name = name
        self.small_faces = small_faces

    def decide(self, view, roll):
        if len(roll) == 0:
            return Action.stop()
        big_zeros = find_big_zero_dice(roll, self.small_faces)
        big_count = count_big_dice(roll, self.small_faces)
        if big_zeros:
            if len(big_zeros) == big_count:
                return Action.roll(tuple(find_zero_dice(roll)))
            return Action.roll(tuple(big_zeros))

        zeros = find_zero_dice(roll)
        if zeros:
            if big_count == 0:
                return Action.roll(tuple(zeros))
            return Action.roll((zeros[0],))

        return Action.roll((find_big_min_die(roll),))
