"""
Operations: the minute pipeline and its offline companions.

Usage::

    from worldstate.ops.generation import GenerationService

    result = await service.evaluate_minute()
    match result:
        case Ok(evaluation):
            print(evaluation.status)
        case Err(error):
            log.error("tick.failed", **error.to_dict())
"""
