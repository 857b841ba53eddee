from tank_monitor.models.tank import TankStatus


def clamp_fill_level(value: float) -> float:
    return max(0.0, min(100.0, value))


def next_status(current: TankStatus, fill_level: float, low_threshold: float, hysteresis: float) -> TankStatus:
    """
    Estado derivado del nivel con histeresis:
    - por debajo del umbral pasa a ``warning``;
    - vuelve a ``online`` solo por encima de umbral + histeresis;
    - en la banda intermedia conserva el estado actual.
    ``offline`` no lo decide el nivel, se mantiene.
    """
    if current == TankStatus.offline:
        return current
    if fill_level < low_threshold:
        return TankStatus.warning
    if current == TankStatus.warning and fill_level <= low_threshold + hysteresis:
        return TankStatus.warning
    return TankStatus.online
